"""
Parser module for TSM time-series storage files.

This module provides the header, index and block readers, the query layer
built on top of them, and helpers for reading many files concurrently.
"""

from .errors import (
    TsmError,
    HeaderError,
    BadMagicError,
    UnsupportedVersionError,
    CorruptIndexError,
    InvalidEncodingError,
    MalformedEntryError,
    BlockError,
    MalformedBlockError,
    ChecksumError,
)
from .sources import (
    ByteSource,
    BytesSource,
    MmapSource,
    PreadSource,
    LockedFileSource,
    open_source,
)
from .tsm_parse import (
    MAGIC,
    BlockQuery,
    BlockResult,
    FastTsmReader,
    Header,
    IndexEntry,
    IndexTable,
    TsmConfig,
    build_index,
    open_tsm,
    query,
    read_block,
    validate_header,
)
from .async_tsm_reader import AsyncTsmReader, TsmReader

__all__ = [
    # Errors
    "TsmError",
    "HeaderError",
    "BadMagicError",
    "UnsupportedVersionError",
    "CorruptIndexError",
    "InvalidEncodingError",
    "MalformedEntryError",
    "BlockError",
    "MalformedBlockError",
    "ChecksumError",

    # Byte sources
    "ByteSource",
    "BytesSource",
    "MmapSource",
    "PreadSource",
    "LockedFileSource",
    "open_source",

    # TSM parsing
    "MAGIC",
    "BlockQuery",
    "BlockResult",
    "FastTsmReader",
    "Header",
    "IndexEntry",
    "IndexTable",
    "TsmConfig",
    "build_index",
    "open_tsm",
    "query",
    "read_block",
    "validate_header",

    # Multi-file helpers
    "AsyncTsmReader",
    "TsmReader",
]
