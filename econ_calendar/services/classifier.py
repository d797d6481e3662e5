"""Direction-aware good/bad/neutral classification of a release."""

from __future__ import annotations

import re

from ..domain import ResultType

_NON_NUMERIC_RE = re.compile(r"[^-\d.]")
_LEADING_NUMBER_RE = re.compile(r"^-?(\d+(\.\d*)?|\.\d+)")


def parse_numeric(value: str | None) -> float | None:
    """Read the leading number out of a figure such as ``-1.2%`` or ``227 K``.

    Everything except digits, ``.`` and ``-`` is dropped first; ``None`` when
    nothing numeric is left.
    """

    if not value:
        return None
    stripped = _NON_NUMERIC_RE.sub("", value.replace("\u2013", "-").replace("\u2014", "-"))
    match = _LEADING_NUMBER_RE.match(stripped)
    if not match:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def classify(actual: str | None, forecast: str | None, higher_is_better: bool | None) -> ResultType | None:
    """Compare a reported value with its forecast.

    Equal values are neutral whatever the direction; otherwise an unknown
    direction yields ``None`` rather than a guess.
    """

    actual_number = parse_numeric(actual)
    forecast_number = parse_numeric(forecast)
    if actual_number is None or forecast_number is None:
        return None
    if actual_number == forecast_number:
        return ResultType.NEUTRAL
    if higher_is_better is None:
        return None
    if (actual_number > forecast_number) == higher_is_better:
        return ResultType.GOOD
    return ResultType.BAD


def infer_direction(actual: str | None, forecast: str | None, result: ResultType | str | None) -> bool | None:
    """Work out whether a higher reading is favorable from one past release."""

    if not result:
        return None
    try:
        outcome = ResultType(result)
    except ValueError:
        return None
    if outcome is ResultType.NEUTRAL:
        return None
    actual_number = parse_numeric(actual)
    forecast_number = parse_numeric(forecast)
    if actual_number is None or forecast_number is None or actual_number == forecast_number:
        return None
    actual_higher = actual_number > forecast_number
    good = outcome is ResultType.GOOD
    return actual_higher == good


__all__ = ["classify", "infer_direction", "parse_numeric"]
