"""HTML rendering of the poller's view state.

``render`` is a pure function: same state in, same markup out. The widget's
stylesheet travels with every fragment and only targets elements inside
``.weather-container``.
"""

from __future__ import annotations

import html
import math
import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sensor_poller import ERROR, LOADING, SensorReading, ViewState

TITLE = "Single-Axis Solar Monitor"
INVALID_DATE = "Invalid Date"

WIDGET_CSS = """
.weather-container {
  font-family: 'Poppins', sans-serif;
  max-width: 900px;
  margin: 30px auto;
  padding: 30px;
  background: linear-gradient(135deg, #f8f9fa 0%, #e9ecef 100%);
  border-radius: 20px;
  box-shadow: 0 10px 30px rgba(0, 0, 0, 0.1);
}
.weather-container h1 { text-align: center; color: #1a365d; font-weight: 600; }
.weather-container .date-display { text-align: center; margin: 20px 0 30px; color: #4a5568; }
.weather-container .weather-cards { display: flex; flex-wrap: wrap; gap: 20px; margin-bottom: 40px; }
.weather-container .weather-card {
  flex: 1;
  min-width: 200px;
  padding: 25px;
  background: #ffffff;
  border-radius: 16px;
  text-align: center;
}
.weather-container .card-icon { font-size: 2.5rem; margin-bottom: 15px; }
.weather-container .card-data { font-size: 2.2rem; font-weight: 700; color: #1a365d; }
.weather-container .card-label { color: #718096; text-transform: uppercase; letter-spacing: 1px; }
.weather-container .rain-alert {
  display: flex;
  align-items: center;
  padding: 20px;
  margin: 30px 0;
  border-radius: 12px;
  color: white;
  font-weight: 600;
  background: linear-gradient(135deg, #ff4d4d 0%, #f9cb28 100%);
}
.weather-container .alert-icon { font-size: 2rem; margin-right: 15px; }
.weather-container .alert-title { font-size: 1.2rem; font-weight: 700; }
.weather-container .status-bar {
  display: flex;
  justify-content: space-between;
  padding: 20px;
  color: #718096;
  border-top: 1px solid rgba(0, 0, 0, 0.05);
}
.weather-container .status-ok { color: #38b2ac; font-weight: 600; }
.weather-container .status-error { color: #f56565; font-weight: 600; }
.weather-container.loading { text-align: center; padding: 80px; color: #718096; }
.weather-container.error { text-align: center; padding: 50px; color: #f56565; }
"""

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exponent = text.split("e")
    exp = int(exponent)
    if -7 < exp < 21:
        return format(Decimal(text), "f")
    return f"{mantissa}e{'+' if exp > 0 else '-'}{abs(exp)}"


def format_value(value: Any) -> str:
    """Display a JSON value the way a browser would interpolate it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, list):
        return ",".join(format_value(item) for item in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def is_rain_detected(reading: SensorReading) -> bool:
    value = reading.rain_detected
    # bool is an int subclass; JSON true is not the integer 1.
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == 1


def is_status_ok(reading: SensorReading) -> bool:
    return reading.sensor_status == "OK"


def parse_epoch_ms(value: Any) -> Optional[datetime]:
    """Local time for an epoch-millisecond value, parsing its leading integer."""
    if value is None or isinstance(value, bool):
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    try:
        return datetime.fromtimestamp(int(match.group()) / 1000)
    except (OverflowError, OSError, ValueError):
        return None


def format_date(moment: datetime) -> str:
    return f"{moment:%A, %b} {moment.day}"


def format_time(moment: datetime, seconds: bool = False) -> str:
    return moment.strftime("%I:%M:%S %p" if seconds else "%I:%M %p")


def _container(body: str, modifier: str = "") -> str:
    cls = f"weather-container {modifier}".strip()
    return f'<style>{WIDGET_CSS}</style>\n<div class="{cls}">{body}</div>'


def _card(icon: str, icon_cls: str, data: str, label: str) -> str:
    return (
        '<div class="weather-card">'
        f'<div class="card-icon {icon_cls}">{icon}</div>'
        f'<div class="card-data">{data}</div>'
        f'<div class="card-label">{label}</div>'
        "</div>"
    )


def _esc(value: Any) -> str:
    return html.escape(format_value(value))


def _render_reading(reading: SensorReading, observed_at: datetime) -> str:
    rain = is_rain_detected(reading)

    parts = [
        f"<h1>{TITLE}</h1>",
        f'<div class="date-display">{format_date(observed_at)} • {format_time(observed_at)}</div>',
        '<div class="weather-cards">',
        _card("💧", "humidity-icon", f"{_esc(reading.humidity)}%", "Humidity"),
        _card("🌡️", "temp-icon", f"{_esc(reading.temperature)}°C", "Temperature"),
        _card("🌧️" if rain else "☀️", "rain-icon", "Yes" if rain else "No", "Rain Detected"),
        "</div>",
    ]

    if rain:
        parts.append(
            '<div class="rain-alert">'
            '<span class="alert-icon">⚠️</span>'
            '<div class="alert-content">'
            '<div class="alert-title">Rain Detected!</div>'
            f'<div class="alert-info">Current intensity: {_esc(reading.rain_intensity)}</div>'
            "</div></div>"
        )

    last_update = parse_epoch_ms(reading.last_update)
    if is_status_ok(reading):
        status = '<span class="status-ok">System Online</span>'
    else:
        status = '<span class="status-error">System Error</span>'
    updated = format_time(last_update, seconds=True) if last_update else INVALID_DATE
    parts.append(
        '<div class="status-bar">'
        f'<div class="sensor-status">{status}</div>'
        f'<div class="last-update">Last Updated: {updated}</div>'
        "</div>"
    )
    return "".join(parts)


def render(state: ViewState) -> str:
    """Return the widget markup for ``state``."""
    if state.status == LOADING:
        return _container("Loading weather data...", "loading")
    if state.status == ERROR:
        return _container(f"Error: {html.escape(state.message or '')}", "error")
    if state.reading is None:
        return _container("No weather data available", "error")
    return _container(_render_reading(state.reading, state.observed_at))
