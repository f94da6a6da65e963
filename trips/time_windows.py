"""Resolution of symbolic time-range tokens into epoch-second windows."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from core.exceptions import InvalidRangeError, RangeTooLargeError
from date_utils import ensure_utc, get_current_utc_time, parse_timestamp, to_epoch_seconds

logger = logging.getLogger(__name__)

MAX_CUSTOM_SPAN = timedelta(days=365)

# Rolling windows ending at "now".
ROLLING_WINDOWS: dict[str, timedelta] = {
    "last1h": timedelta(hours=1),
    "last24h": timedelta(hours=24),
    "last7d": timedelta(days=7),
    "last30d": timedelta(days=30),
    "last90d": timedelta(days=90),
}

RECENT_UNITS: dict[str, timedelta] = {
    "hours": timedelta(hours=1),
    "days": timedelta(days=1),
    "weeks": timedelta(weeks=1),
}

SUPPORTED_TOKENS = ("today", "yesterday", *ROLLING_WINDOWS, "custom")


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive [start, end] window in epoch seconds."""

    start: int
    end: int

    @property
    def span_seconds(self) -> int:
        return self.end - self.start


class TimeWindowResolver:
    """Turns range tokens such as ``today`` or ``last7d`` into time windows.

    The clock is injectable so tests can pin "now".
    """

    def __init__(self, clock: Callable[[], datetime] = get_current_utc_time) -> None:
        self._clock = clock

    def _now(self, now: datetime | None) -> datetime:
        return ensure_utc(now) if now is not None else ensure_utc(self._clock())

    def resolve(
        self,
        token: str,
        custom_start: str | datetime | None = None,
        custom_end: str | datetime | None = None,
        *,
        now: datetime | None = None,
        enforce_max_span: bool = False,
    ) -> TimeWindow:
        """
        Resolve a range token into an inclusive epoch-second window.

        Args:
            token: One of ``today``, ``yesterday``, ``last1h``, ``last24h``,
                ``last7d``, ``last30d``, ``last90d`` or ``custom``.
            custom_start: ISO timestamp, required for ``custom``.
            custom_end: ISO timestamp, required for ``custom``.
            now: Overrides the resolver clock.
            enforce_max_span: Reject custom windows longer than 365 days.

        Raises:
            InvalidRangeError: Unknown token, missing/unparseable custom
                bounds, or start after end.
            RangeTooLargeError: Custom span above the cap when enforced.
        """
        current = self._now(now)

        if token == "today":
            return self._day_bounds(current)
        if token == "yesterday":
            return self._day_bounds(current - timedelta(days=1))
        if token in ROLLING_WINDOWS:
            start = current - ROLLING_WINDOWS[token]
            return TimeWindow(to_epoch_seconds(start), to_epoch_seconds(current))
        if token == "custom":
            return self._custom(custom_start, custom_end, enforce_max_span)

        msg = f"Unsupported time range '{token}'"
        raise InvalidRangeError(msg, {"supported": list(SUPPORTED_TOKENS)})

    def recent(
        self,
        value: float,
        unit: str = "hours",
        *,
        now: datetime | None = None,
    ) -> TimeWindow:
        """Window covering the last ``value`` hours/days/weeks.

        Unknown units fall back to hours.
        """
        if value < 0:
            msg = "Recent window length must not be negative"
            raise InvalidRangeError(msg, {"value": value})
        step = RECENT_UNITS.get(unit)
        if step is None:
            logger.debug("Unknown recent-window unit '%s'; using hours", unit)
            step = RECENT_UNITS["hours"]
        end = to_epoch_seconds(self._now(now))
        return TimeWindow(end - int(step.total_seconds() * value), end)

    def from_dates(
        self,
        start: str | datetime,
        end: str | datetime,
        *,
        enforce_max_span: bool = False,
    ) -> TimeWindow:
        return self._custom(start, end, enforce_max_span)

    @staticmethod
    def _day_bounds(moment: datetime) -> TimeWindow:
        day_start = datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)
        day_end = day_start + timedelta(days=1) - timedelta(seconds=1)
        return TimeWindow(to_epoch_seconds(day_start), to_epoch_seconds(day_end))

    @staticmethod
    def _custom(
        custom_start: str | datetime | None,
        custom_end: str | datetime | None,
        enforce_max_span: bool,
    ) -> TimeWindow:
        if not custom_start or not custom_end:
            msg = "Custom date range requires both start and end dates"
            raise InvalidRangeError(msg)

        start_dt = parse_timestamp(custom_start)
        end_dt = parse_timestamp(custom_end)
        if start_dt is None or end_dt is None:
            msg = "Custom date range bounds must be ISO 8601 timestamps"
            raise InvalidRangeError(
                msg,
                {"customStart": str(custom_start), "customEnd": str(custom_end)},
            )

        window = TimeWindow(to_epoch_seconds(start_dt), to_epoch_seconds(end_dt))
        if window.start > window.end:
            msg = "Custom date range start must not be after its end"
            raise InvalidRangeError(msg, {"start": window.start, "end": window.end})

        if enforce_max_span and window.span_seconds > MAX_CUSTOM_SPAN.total_seconds():
            msg = "Custom date range cannot exceed 365 days"
            raise RangeTooLargeError(msg, {"spanSeconds": window.span_seconds})

        return window
