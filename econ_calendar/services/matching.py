"""Match pinned references and trade snapshots against calendar events by base name."""

from __future__ import annotations

from typing import Iterable

from ..domain import EconomicEventRecord, Impact, PinnedEventReference, TradeEventSnapshot
from .normalizer import clean_name


def base_name_match(a: str | None, b: str | None) -> bool:
    return clean_name(a).lower() == clean_name(b).lower()


def _impact_key(value: Impact | str | None) -> Impact | str | None:
    if value is None or isinstance(value, Impact):
        return value
    return Impact.parse(value, default=value.strip() or None)


def _currency_key(value: str | None) -> str | None:
    return value.strip().upper() if value else None


def _same_class(impact_a, currency_a, impact_b, currency_b) -> bool:
    return _impact_key(impact_a) == _impact_key(impact_b) and _currency_key(currency_a) == _currency_key(currency_b)


def match_live_to_pin(event: EconomicEventRecord, pin: PinnedEventReference) -> bool:
    return base_name_match(event.event_name, pin.event) and _same_class(
        event.impact, event.currency, pin.impact, pin.currency
    )


def match_trade_to_pin(trade_event: TradeEventSnapshot, pin: PinnedEventReference) -> bool:
    return base_name_match(trade_event.name, pin.event) and _same_class(
        trade_event.impact, trade_event.currency, pin.impact, pin.currency
    )


def match_trade_to_live(trade_event: TradeEventSnapshot, event: EconomicEventRecord) -> bool:
    return base_name_match(trade_event.name, event.event_name) and _same_class(
        trade_event.impact, trade_event.currency, event.impact, event.currency
    )


def is_event_pinned(event: EconomicEventRecord, pins: Iterable[PinnedEventReference]) -> bool:
    """True when any pin points at ``event``.

    Pins that recorded an ``event_id`` match on it alone; older pins without
    one fall back to base name, impact and currency.
    """

    for pin in pins:
        if pin.event_id:
            if pin.event_id == event.external_id:
                return True
            continue
        if match_live_to_pin(event, pin):
            return True
    return False


__all__ = [
    "base_name_match",
    "is_event_pinned",
    "match_live_to_pin",
    "match_trade_to_live",
    "match_trade_to_pin",
]
