"""Pipeline services: normalization, classification, enrichment, storage and refresh."""

from .classifier import classify, infer_direction, parse_numeric
from .gateway import BatchLookupResult, EventLookupError, EventLookupGateway, LookupResult
from .matching import base_name_match, is_event_pinned, match_live_to_pin, match_trade_to_live, match_trade_to_pin
from .metadata import DirectionInferenceEngine, MetadataCache, merge_history
from .normalizer import clean_name, generate_id, normalize
from .refresh import AllSourcesFailedError, BootstrapResult, CalendarRefresher, ProcessResult, RefreshResult
from .store import EventStore, HistoryRow, StoreResult, dedupe_last

__all__ = [
    "AllSourcesFailedError",
    "BatchLookupResult",
    "BootstrapResult",
    "CalendarRefresher",
    "DirectionInferenceEngine",
    "EventLookupError",
    "EventLookupGateway",
    "EventStore",
    "HistoryRow",
    "LookupResult",
    "MetadataCache",
    "ProcessResult",
    "RefreshResult",
    "StoreResult",
    "base_name_match",
    "classify",
    "clean_name",
    "dedupe_last",
    "generate_id",
    "infer_direction",
    "is_event_pinned",
    "match_live_to_pin",
    "match_trade_to_live",
    "match_trade_to_pin",
    "merge_history",
    "normalize",
    "parse_numeric",
]
