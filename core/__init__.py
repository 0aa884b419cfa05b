"""Core package - exports core functionality."""

from .session import HistoryStore
from .feature_requests import FeatureRequestStore, REQUEST_STATUSES

__all__ = [
    "HistoryStore",
    "FeatureRequestStore",
    "REQUEST_STATUSES",
]
