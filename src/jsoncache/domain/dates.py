"""Conversion of date-typed attribute values to and from JSON."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Final

from jsoncache.domain.errors import BadState


class DateFormat(StrEnum):
    ISO_WITH_SEPARATORS = "iso_with_separators"
    ISO_WITHOUT_SEPARATORS = "iso_without_separators"
    EPOCH_SECONDS = "epoch_seconds"


ISO_PATTERNS: Final[dict[DateFormat, str]] = {
    DateFormat.ISO_WITH_SEPARATORS: "%Y-%m-%dT%H:%M:%SZ",
    DateFormat.ISO_WITHOUT_SEPARATORS: "%Y%m%dT%H%M%SZ",
}


@dataclass(frozen=True, slots=True)
class DateCodec:
    """Parse and format dates according to the configured ``date_format``.

    Parsed values are always timezone-aware UTC datetimes. ISO strings are
    interpreted as UTC (the trailing ``Z``); epoch values are seconds since
    1970-01-01T00:00:00Z and may be fractional.
    """

    date_format: DateFormat = DateFormat.ISO_WITH_SEPARATORS

    def parse(self, value: object) -> datetime:
        if isinstance(value, datetime):
            return _as_utc(value)

        if self.date_format == DateFormat.EPOCH_SECONDS:
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise BadState(f"Expected epoch seconds, got {value!r}")
            return datetime.fromtimestamp(value, tz=UTC)

        if not isinstance(value, str):
            raise BadState(f"Expected ISO 8601 date string, got {value!r}")
        try:
            parsed = datetime.strptime(value, ISO_PATTERNS[self.date_format])  # noqa: DTZ007
        except ValueError as exc:
            raise BadState(f"Unparseable date {value!r} for {self.date_format}") from exc
        return parsed.replace(tzinfo=UTC)

    def format(self, value: datetime) -> str | float:
        utc_value = _as_utc(value)
        if self.date_format == DateFormat.EPOCH_SECONDS:
            return utc_value.timestamp()
        return utc_value.strftime(ISO_PATTERNS[self.date_format])


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
