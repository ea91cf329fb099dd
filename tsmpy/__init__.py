"""
tsmpy - A Python library for reading TSM time-series storage files.

This package provides tools for inspecting and querying TSM files:
- Header and trailing-index parsing with integrity checks
- CRC-32 verified block reads through mmap, pread or locked file handles
- Lazy key + time-range lookups returning raw block payloads
- pandas views of the index and per-key statistics
- Concurrent multi-file loading with asyncio
"""

__version__ = "0.1.0"

# Import main classes and functions for easy access
from .parser.tsm_parse import (
    BlockQuery,
    BlockResult,
    FastTsmReader,
    IndexEntry,
    IndexTable,
    TsmConfig,
    open_tsm,
)
from .parser.async_tsm_reader import AsyncTsmReader, TsmReader
from .parser.errors import (
    TsmError,
    BadMagicError,
    UnsupportedVersionError,
    CorruptIndexError,
    InvalidEncodingError,
    MalformedEntryError,
    MalformedBlockError,
    ChecksumError,
)

__all__ = [
    # Version info
    "__version__",

    # TSM reading
    "FastTsmReader",
    "open_tsm",
    "TsmConfig",
    "IndexTable",
    "IndexEntry",
    "BlockQuery",
    "BlockResult",

    # Multi-file helpers
    "AsyncTsmReader",
    "TsmReader",

    # Errors
    "TsmError",
    "BadMagicError",
    "UnsupportedVersionError",
    "CorruptIndexError",
    "InvalidEncodingError",
    "MalformedEntryError",
    "MalformedBlockError",
    "ChecksumError",
]
