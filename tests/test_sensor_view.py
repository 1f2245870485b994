"""Tests for rendering the view state to widget markup."""

from datetime import datetime

from sensor_poller import SensorReading, ViewState
from sensor_view import (
    INVALID_DATE,
    format_date,
    format_time,
    format_value,
    is_rain_detected,
    is_status_ok,
    parse_epoch_ms,
    render,
)

OBSERVED = datetime(2023, 11, 14, 15, 5, 9)


def _reading(**overrides) -> SensorReading:
    fields = dict(
        humidity=61,
        temperature=24.5,
        rain_detected=0,
        rain_intensity="Light",
        sensor_status="OK",
        last_update="1700000000000",
    )
    fields.update(overrides)
    return SensorReading(**fields)


def _render(reading) -> str:
    return render(ViewState.loaded(reading, OBSERVED))


class TestFormatValue:
    def test_none_is_blank(self):
        assert format_value(None) == ""

    def test_integral_float_drops_fraction(self):
        assert format_value(65.0) == "65"

    def test_fractional_float_kept(self):
        assert format_value(23.75) == "23.75"

    def test_booleans_lowercase(self):
        assert format_value(True) == "true"

    def test_small_and_large_floats_use_browser_notation(self):
        assert format_value(1e-07) == "1e-7"
        assert format_value(1e-05) == "0.00001"
        assert format_value(1e21) == "1e+21"
        assert format_value(float("nan")) == "NaN"

    def test_list_joined_with_commas(self):
        assert format_value([1, 2.0, None, "a"]) == "1,2,,a"

    def test_object_placeholder(self):
        assert format_value({"a": 1}) == "[object Object]"


class TestPredicates:
    def test_rain_detected_only_for_integer_one(self):
        assert is_rain_detected(_reading(rain_detected=1))
        assert is_rain_detected(_reading(rain_detected=1.0))
        for value in (0, None, "1", True, 2):
            assert not is_rain_detected(_reading(rain_detected=value)), value

    def test_status_ok_is_exact_match(self):
        assert is_status_ok(_reading(sensor_status="OK"))
        for value in ("ERROR", "", "ok", None):
            assert not is_status_ok(_reading(sensor_status=value)), value


class TestTimestamps:
    def test_parse_epoch_ms_string(self):
        assert parse_epoch_ms("1700000000000") == datetime.fromtimestamp(1700000000)

    def test_parse_epoch_ms_leading_integer(self):
        assert parse_epoch_ms("1700000000000abc") == datetime.fromtimestamp(1700000000)

    def test_parse_epoch_ms_number(self):
        assert parse_epoch_ms(1700000000000) == datetime.fromtimestamp(1700000000)

    def test_parse_epoch_ms_garbage(self):
        assert parse_epoch_ms("soon") is None
        assert parse_epoch_ms(None) is None

    def test_format_time_twelve_hour(self):
        assert format_time(OBSERVED) == "03:05 PM"
        assert format_time(OBSERVED, seconds=True) == "03:05:09 PM"

    def test_format_date(self):
        assert format_date(OBSERVED) == "Tuesday, Nov 14"


class TestRenderStates:
    def test_loading(self):
        out = render(ViewState())
        assert "Loading weather data..." in out
        assert 'class="weather-card"' not in out

    def test_error_shows_message_without_cards(self):
        out = render(ViewState.failed("Failed to fetch data", OBSERVED))
        assert "Error: Failed to fetch data" in out
        assert 'class="weather-card"' not in out

    def test_error_message_is_escaped(self):
        out = render(ViewState.failed("<b>boom</b>", OBSERVED))
        assert "&lt;b&gt;boom&lt;/b&gt;" in out

    def test_no_data_is_distinct_from_error(self):
        out = render(ViewState.loaded(None, OBSERVED))
        assert "No weather data available" in out
        assert "Error:" not in out

    def test_render_is_deterministic(self):
        state = ViewState.loaded(_reading(), OBSERVED)
        assert render(state) == render(state)

    def test_stylesheet_is_scoped_to_widget(self):
        out = render(ViewState())
        assert "<style>" in out
        assert "\nh1 {" not in out


class TestRenderReading:
    def test_header_uses_observation_time(self):
        out = _render(_reading())
        assert "Single-Axis Solar Monitor" in out
        assert "Tuesday, Nov 14 • 03:05 PM" in out

    def test_values_rendered_without_conversion(self):
        out = _render(_reading(humidity=61, temperature=24.5))
        assert '<div class="card-data">61%</div>' in out
        assert '<div class="card-data">24.5°C</div>' in out

    def test_missing_values_render_blank(self):
        out = _render(SensorReading())
        assert '<div class="card-data">%</div>' in out
        assert '<div class="card-data">°C</div>' in out

    def test_empty_single_axis_renders_blank_cards(self):
        out = _render(SensorReading())
        assert "No weather data available" not in out
        assert out.count('class="weather-card"') == 3
        assert '<div class="card-data">No</div>' in out
        assert '<span class="status-error">System Error</span>' in out

    def test_rain_alert_present_when_detected(self):
        out = _render(_reading(rain_detected=1, rain_intensity="Heavy"))
        assert 'class="rain-alert"' in out
        assert "Current intensity: Heavy" in out
        assert "🌧️" in out
        assert '<div class="card-data">Yes</div>' in out

    def test_rain_alert_absent_otherwise(self):
        for value in (0, None, "1"):
            out = _render(_reading(rain_detected=value))
            assert 'class="rain-alert"' not in out
            assert "☀️" in out
            assert '<div class="card-data">No</div>' in out

    def test_status_ok_variant(self):
        out = _render(_reading(sensor_status="OK"))
        assert '<span class="status-ok">System Online</span>' in out
        assert "status-error" not in out.split("</style>", 1)[1]

    def test_status_error_variant(self):
        for value in ("ERROR", "", None):
            out = _render(_reading(sensor_status=value))
            assert '<span class="status-error">System Error</span>' in out

    def test_last_update_local_time(self):
        out = _render(_reading(last_update="1700000000000"))
        expected = datetime.fromtimestamp(1700000000).strftime("%I:%M:%S %p")
        assert f"Last Updated: {expected}" in out

    def test_last_update_unparseable(self):
        out = _render(_reading(last_update="never"))
        assert f"Last Updated: {INVALID_DATE}" in out
