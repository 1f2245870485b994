#!/usr/bin/env python3
"""Single-axis sensor poller.

Fetches the latest ``Single_Axis`` reading from SENSOR_ENDPOINT every
SENSOR_POLL_INTERVAL seconds and keeps it as an immutable view state that the
UI renders. Polls may overlap; each one carries a sequence number and only the
most recently issued poll is allowed to update the state.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set

import httpx

ENDPOINT_URL = os.getenv(
    "SENSOR_ENDPOINT", "https://waterdtection-default-rtdb.firebaseio.com/.json"
)
POLL_INTERVAL_S = float(os.getenv("SENSOR_POLL_INTERVAL", "1.0"))
REQUEST_TIMEOUT_S = float(os.getenv("SENSOR_REQUEST_TIMEOUT", "10.0"))
LOG_LEVEL = os.getenv("SENSOR_LOG_LEVEL", "INFO")

PAYLOAD_KEY = "Single_Axis"
FETCH_FAILED = "Failed to fetch data"

LOADING = "loading"
ERROR = "error"
LOADED = "loaded"

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """The endpoint could not be reached or its body could not be decoded."""


@dataclass(frozen=True)
class SensorReading:
    humidity: Any = None
    temperature: Any = None
    rain_detected: Any = None
    rain_intensity: Any = None
    sensor_status: Any = None
    last_update: Any = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SensorReading":
        return cls(
            humidity=payload.get("Humidity"),
            temperature=payload.get("Temperature"),
            rain_detected=payload.get("RainDetected"),
            rain_intensity=payload.get("RainIntensity"),
            sensor_status=payload.get("SensorStatus"),
            last_update=payload.get("LastUpdate"),
        )


@dataclass(frozen=True)
class ViewState:
    """What the widget should show. Replaced wholesale, never mutated."""

    status: str = LOADING
    message: Optional[str] = None
    reading: Optional[SensorReading] = None
    observed_at: Optional[datetime] = None

    @classmethod
    def failed(cls, message: str, observed_at: datetime) -> "ViewState":
        return cls(status=ERROR, message=message, observed_at=observed_at)

    @classmethod
    def loaded(cls, reading: Optional[SensorReading], observed_at: datetime) -> "ViewState":
        return cls(status=LOADED, reading=reading, observed_at=observed_at)


def _extract_reading(body: Any) -> Optional[SensorReading]:
    if not isinstance(body, dict):
        return None
    payload = body.get(PAYLOAD_KEY)
    if isinstance(payload, dict):
        return SensorReading.from_payload(payload)
    # null, false, 0 and "" mean no reading; empty objects and arrays do not.
    if not isinstance(payload, list) and not payload:
        return None
    # Present but not an object: the cards render with blank values.
    return SensorReading()


async def fetch_reading(client: httpx.AsyncClient, url: str) -> Optional[SensorReading]:
    """GET ``url`` and return its reading, or None when the body has none.

    Raises FetchError for transport failures, non-2xx responses and bodies
    that are not JSON.
    """
    try:
        resp = await client.get(url)
    except httpx.HTTPError as exc:
        raise FetchError(str(exc) or FETCH_FAILED) from exc

    if not resp.is_success:
        raise FetchError(FETCH_FAILED)

    try:
        body = resp.json()
    except ValueError as exc:
        raise FetchError(str(exc)) from exc

    return _extract_reading(body)


class Poller:
    """Owns the poll timer and the current view state."""

    def __init__(
        self,
        url: str = ENDPOINT_URL,
        interval: float = POLL_INTERVAL_S,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = datetime.now,
        on_update: Optional[Callable[[ViewState], None]] = None,
    ):
        self.url = url
        self.interval = interval
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT_S, follow_redirects=True
        )
        self._clock = clock
        self._on_update = on_update
        self._state = ViewState()
        self._issued = 0
        self._applied = 0
        self._stopped = False
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def poll_once(self) -> None:
        self._issued += 1
        seq = self._issued
        try:
            reading = await fetch_reading(self._client, self.url)
        except FetchError as exc:
            logger.warning("Poll #%d failed for %s: %s", seq, self.url, exc)
            new_state = ViewState.failed(str(exc), self._clock())
        else:
            if reading is None:
                logger.debug("Poll #%d: no %s in response", seq, PAYLOAD_KEY)
            new_state = ViewState.loaded(reading, self._clock())
        self._apply(seq, new_state)

    def _apply(self, seq: int, new_state: ViewState) -> None:
        if self._stopped:
            return
        if seq <= self._applied:
            logger.debug("Discarding stale poll #%d (already applied #%d)", seq, self._applied)
            return
        self._applied = seq
        self._state = new_state
        logger.debug("Poll #%d applied: %s", seq, new_state.status)
        if self._on_update is not None:
            self._on_update(new_state)

    def _poll_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unexpected polling error: %s", exc, exc_info=exc)

    async def run(self) -> None:
        """Poll now and every ``interval`` seconds until stopped or cancelled."""
        self._task = asyncio.current_task()
        logger.info("Poller starting: %s every %.1fs", self.url, self.interval)
        try:
            while not self._stopped:
                poll = asyncio.create_task(self.poll_once())
                self._inflight.add(poll)
                poll.add_done_callback(self._poll_done)
                await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            pass
        finally:
            self._stopped = True
            pending = list(self._inflight)
            for poll in pending:
                poll.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            if self._owns_client:
                await self._client.aclose()
            logger.info("Poller stopped")

    def stop(self) -> None:
        """Stop polling. Safe to call from any thread, and more than once."""
        self._stopped = True
        task = self._task
        if task is None or task.done():
            return
        loop = task.get_loop()
        if not loop.is_closed():
            loop.call_soon_threadsafe(task.cancel)

    def start_background(self) -> threading.Thread:
        """Run the poll loop on its own event loop in a daemon thread."""
        thread = threading.Thread(
            target=asyncio.run, args=(self.run(),), name="sensor-poller", daemon=True
        )
        thread.start()
        return thread


def _log_state(state: ViewState) -> None:
    if state.status == ERROR:
        logger.info("[error] %s", state.message)
    elif state.reading is None:
        logger.info("[no data] response has no %s", PAYLOAD_KEY)
    else:
        logger.info("[ok] %s", state.reading)


def main() -> None:
    logging.basicConfig(level=LOG_LEVEL, format="[%(name)s] %(message)s")
    poller = Poller(on_update=_log_state)
    try:
        asyncio.run(poller.run())
    except KeyboardInterrupt:
        poller.stop()


if __name__ == "__main__":
    main()
