"""Exception hierarchy for TSM file reading.

Header and index errors are fatal for the whole file. Entry and block errors
are local to the one record they describe.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .tsm_parse import IndexEntry, IndexTable


class TsmError(Exception):
    """Base exception for all TSM reader errors."""
    pass


class HeaderError(TsmError):
    """Raised when the file header cannot be accepted."""
    pass


class BadMagicError(HeaderError):
    """Raised when the file does not start with the TSM magic bytes."""

    def __init__(self, found: bytes):
        self.found = found
        super().__init__(f"Bad magic {found.hex(' ') or '<empty>'}; not a TSM file")


class UnsupportedVersionError(HeaderError):
    """Raised when the header version byte is not one this reader implements."""

    def __init__(self, version: int, supported: Any):
        self.version = version
        self.supported = tuple(supported)
        super().__init__(f"Unsupported TSM version {version}; supported: {self.supported}")


class CorruptIndexError(TsmError):
    """Raised when the index region cannot be trusted.

    ``partial`` holds the entries parsed before the failure point, flagged with
    ``partial=True``. It is a diagnostic only and never a usable index.
    """

    def __init__(self, message: str, *, position: Optional[int] = None,
                 partial: Optional["IndexTable"] = None):
        self.position = position
        self.partial = partial
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)


class InvalidEncodingError(CorruptIndexError):
    """Raised when a series key is not valid UTF-8."""
    pass


class MalformedEntryError(TsmError):
    """Describes one index entry that violates the offset/size invariants."""

    def __init__(self, key: str, type_code: int, position: int, entry: "IndexEntry", reason: str):
        self.key = key
        self.type_code = type_code
        self.position = position
        self.entry = entry
        self.reason = reason
        super().__init__(f"Malformed index entry for {key!r} at offset {position}: {reason}")


class BlockError(TsmError):
    """Raised when a single block cannot be returned."""

    def __init__(self, message: str, entry: "IndexEntry"):
        self.entry = entry
        super().__init__(message)


class MalformedBlockError(BlockError):
    """Raised when a block location cannot hold a checksummed block."""
    pass


class ChecksumError(BlockError):
    """Raised when a block's stored CRC-32 does not match its payload."""

    def __init__(self, entry: "IndexEntry", expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"CRC mismatch for block at offset {entry.block_offset}: "
            f"stored {expected:08x}, computed {actual:08x}",
            entry,
        )
