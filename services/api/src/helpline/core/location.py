"""Geolocation helpers.

The device position is fetched by the client; the server only validates,
formats and bounds the wait on a position source.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable

from pydantic import BaseModel, Field

from services.api.src.helpline.config import settings

logger = logging.getLogger(__name__)


class Location(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


def from_coordinates(latitude: float | None, longitude: float | None) -> Location | None:
    """Build a Location only when both coordinates are present."""
    if latitude is None or longitude is None:
        return None
    return Location(latitude=latitude, longitude=longitude)


def acquire_location(
    fetch_fn: Callable[[], Location | dict],
    timeout_s: float | None = None,
) -> Location | None:
    """One-shot position fetch with a bounded wait.

    Returns None when the source times out or fails; callers carry on
    without a location.
    """
    timeout_s = settings.location_timeout_s if timeout_s is None else timeout_s
    # One worker per call: a source that never returns only ties up its own thread.
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="location")
    try:
        position = executor.submit(fetch_fn).result(timeout=timeout_s)
    except FutureTimeoutError:
        logger.warning("location_timeout", extra={"timeout_s": timeout_s})
        return None
    except Exception as exc:
        logger.warning("location_unavailable", extra={"error": str(exc)})
        return None
    finally:
        executor.shutdown(wait=False)

    if position is None:
        return None
    if isinstance(position, Location):
        return position
    try:
        return Location.model_validate(position)
    except ValueError as exc:
        logger.warning("location_invalid", extra={"error": str(exc)})
        return None


def format_location(location: Location) -> str:
    return f"{location.latitude:.6f}, {location.longitude:.6f}"


def maps_url(location: Location) -> str:
    return f"https://www.google.com/maps?q={location.latitude},{location.longitude}"
