"""Services package - WooCommerce access and stream relaying."""

from .woo_client import WooClient
from .data_access import WooDataAccess
from .stream_relay import (
    SSEParser,
    iter_openai_stream,
    iter_relay_stream,
    single_chunk_stream,
    relay,
    format_sse,
)

__all__ = [
    "WooClient",
    "WooDataAccess",
    "SSEParser",
    "iter_openai_stream",
    "iter_relay_stream",
    "single_chunk_stream",
    "relay",
    "format_sse",
]
