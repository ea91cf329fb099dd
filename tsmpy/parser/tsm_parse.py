# tsm_parse.py
"""
Reader for TSM time-series storage files.

Key features
------------
- Header validation (magic ``16 D1 16 D1`` + format version)
- End-anchored index: the last 8 bytes point at the index region, which is
  parsed once at open time into an immutable, arena-style table
- Vectorized decoding of the 28-byte index entries with NumPy structured dtypes
- Per-block CRC-32 verification on positioned reads
- Lazy, restartable key + time-range queries returning raw block payloads
- Clean API: open(), lookup(), read_block(), index_to_pandas(), close()

Assumptions & notes
-------------------
- All multi-byte integers are big-endian. Timestamps are decoded as signed
  64-bit integers and are unit-opaque to this layer.
- Block payloads are returned exactly as stored (minus the 4-byte checksum);
  decoding the compressed values inside them is a separate concern.
- Index entries that break the offset/size invariants are reported on
  ``IndexTable.malformed`` and left out of query results; the rest of the
  index stays usable.

Dependencies: numpy, pandas.
"""
from __future__ import annotations

import logging
import os
import struct
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import (
    BadMagicError,
    BlockError,
    CorruptIndexError,
    InvalidEncodingError,
    MalformedBlockError,
    MalformedEntryError,
    ChecksumError,
    UnsupportedVersionError,
)
from .sources import ByteSource, HandlePolicy, open_source

logger = logging.getLogger(__name__)

MAGIC = b"\x16\xd1\x16\xd1"
HEADER_SIZE = 5               # magic (4) + version (1)
FOOTER_SIZE = 8               # u64 index offset
CHECKSUM_SIZE = 4
INDEX_ENTRY_SIZE = 28
SUPPORTED_VERSIONS: Tuple[int, ...] = (1,)

_TIME_MIN = int(np.iinfo(np.int64).min)
_TIME_MAX = int(np.iinfo(np.int64).max)

_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")

# On-disk index entry (big-endian, packed)
DTYPE_INDEX_ENTRY = np.dtype([
    ("min_time", ">i8"),
    ("max_time", ">i8"),
    ("offset", ">u8"),
    ("size", ">u4"),
])  # 28 bytes

# In-memory arena row (native byte order)
DTYPE_INDEX_ROW = np.dtype([
    ("min_time", "i8"),
    ("max_time", "i8"),
    ("offset", "u8"),
    ("size", "u4"),
    ("type", "u1"),
])

assert DTYPE_INDEX_ENTRY.itemsize == INDEX_ENTRY_SIZE


@dataclass(frozen=True)
class TsmConfig:
    """Tunable reader behaviour.

    Attributes:
        supported_versions: Header versions accepted by ``validate_header``
        handle_policy: How block reads reach the file ("mmap", "pread", "locked")
        verify_checksums: Check each block's CRC-32 before returning its payload
        strict_entries: Raise the first malformed index entry instead of collecting it
    """

    supported_versions: Tuple[int, ...] = SUPPORTED_VERSIONS
    handle_policy: HandlePolicy = "mmap"
    verify_checksums: bool = True
    strict_entries: bool = False


@dataclass(frozen=True)
class Header:
    magic: bytes
    version: int


@dataclass(frozen=True)
class IndexEntry:
    min_time: int
    max_time: int
    block_offset: int
    block_size: int


# --------------------------------------------------------------------------------
# Header
# --------------------------------------------------------------------------------

def validate_header(source: ByteSource, supported_versions: Sequence[int] = SUPPORTED_VERSIONS) -> Header:
    """Check the magic and version bytes at the start of ``source``."""
    raw = source.read_at(0, HEADER_SIZE)
    if len(raw) < HEADER_SIZE or raw[:4] != MAGIC:
        raise BadMagicError(raw[:4])
    version = raw[4]
    if version not in supported_versions:
        raise UnsupportedVersionError(version, supported_versions)
    return Header(magic=raw[:4], version=version)


# --------------------------------------------------------------------------------
# Index
# --------------------------------------------------------------------------------

class IndexTable:
    """Immutable key -> block location table.

    All entries live in one flat structured array (``rows``) in the order they
    were encountered; each key maps to an array of row numbers into it. Keys
    that appear in several index groups have their rows merged in encounter
    order.
    """

    def __init__(
        self,
        rows: np.ndarray,
        rows_by_key: Dict[str, np.ndarray],
        *,
        index_offset: int,
        file_size: int,
        malformed: Sequence[MalformedEntryError] = (),
        partial: bool = False,
    ):
        rows.flags.writeable = False
        for arr in rows_by_key.values():
            arr.flags.writeable = False
        self._rows = rows
        self._rows_by_key = rows_by_key
        self.index_offset = index_offset
        self.file_size = file_size
        self.malformed: Tuple[MalformedEntryError, ...] = tuple(malformed)
        self.partial = partial

    def __repr__(self) -> str:
        flag = ", partial" if self.partial else ""
        return f"IndexTable(keys={len(self)}, entries={self.entry_count}{flag})"

    def __len__(self) -> int:
        return len(self._rows_by_key)

    def __contains__(self, key: object) -> bool:
        return key in self._rows_by_key

    @property
    def rows(self) -> np.ndarray:
        """Read-only structured array of every valid entry."""
        return self._rows

    @property
    def entry_count(self) -> int:
        return len(self._rows)

    def keys(self) -> List[str]:
        return list(self._rows_by_key)

    def rows_for(self, key: str) -> np.ndarray:
        arr = self._rows_by_key.get(key)
        if arr is None:
            return np.empty(0, dtype=np.int64)
        return arr

    def entry_at(self, row: int) -> Tuple[int, IndexEntry]:
        r = self._rows[row]
        entry = IndexEntry(int(r["min_time"]), int(r["max_time"]), int(r["offset"]), int(r["size"]))
        return int(r["type"]), entry

    def entries(self, key: str) -> List[Tuple[int, IndexEntry]]:
        """Return ``(type, IndexEntry)`` pairs for ``key`` in encounter order."""
        return [self.entry_at(int(row)) for row in self.rows_for(key)]

    def types(self, key: str) -> Tuple[int, ...]:
        seen: Dict[int, None] = {}
        for row in self.rows_for(key):
            seen.setdefault(int(self._rows["type"][row]), None)
        return tuple(seen)

    def time_range(self, key: str) -> Optional[Tuple[int, int]]:
        rows = self.rows_for(key)
        if len(rows) == 0:
            return None
        sel = self._rows[rows]
        return int(sel["min_time"].min()), int(sel["max_time"].max())

    def select(self, key: str, start: Optional[int] = None, end: Optional[int] = None) -> np.ndarray:
        """Row numbers for ``key`` intersecting ``[start, end]``, ascending by min_time.

        Ties keep encounter order (stable sort). On-disk ordering is not trusted.
        """
        rows = self.rows_for(key)
        if len(rows) == 0:
            return rows
        lo = _TIME_MIN if start is None else start
        hi = _TIME_MAX if end is None else end
        sel = self._rows[rows]
        mask = (sel["max_time"] >= lo) & (sel["min_time"] <= hi)
        hits = rows[mask]
        order = np.argsort(sel["min_time"][mask], kind="stable")
        return hits[order]

    # ------------------------------ pandas views -------------------------------
    def to_pandas(self, *, time_unit: Optional[str] = None, tz: Optional[str] = None) -> pd.DataFrame:
        """One row per valid entry, in encounter order.

        ``time_unit`` (e.g. "ns", "ms") converts MinTime/MaxTime to UTC
        datetimes; without it they stay raw integers.
        """
        keys = np.empty(len(self._rows), dtype=object)
        for key, rows in self._rows_by_key.items():
            keys[rows] = key

        frame = pd.DataFrame(
            {
                "Key": keys,
                "Type": self._rows["type"].astype(np.uint8),
                "MinTime": self._rows["min_time"].astype(np.int64),
                "MaxTime": self._rows["max_time"].astype(np.int64),
                "BlockOffset": self._rows["offset"].astype(np.uint64),
                "BlockSize": self._rows["size"].astype(np.uint32),
            }
        )
        if time_unit:
            for col in ("MinTime", "MaxTime"):
                converted = pd.to_datetime(frame[col], unit=time_unit, utc=True)
                frame[col] = converted.dt.tz_convert(tz) if tz else converted
        return frame

    def key_statistics(self) -> pd.DataFrame:
        """Per-key block count, overall time span and stored bytes."""
        frame = self.to_pandas()
        stats = frame.groupby("Key", sort=False).agg(
            Blocks=("BlockSize", "size"),
            MinTime=("MinTime", "min"),
            MaxTime=("MaxTime", "max"),
            Bytes=("BlockSize", "sum"),
        )
        stats["Types"] = pd.Series([self.types(key) for key in stats.index], index=stats.index, dtype=object)
        return stats


class _IndexBuilder:
    """Accumulates parsed groups into arena storage."""

    def __init__(self, index_offset: int, file_size: int):
        self.index_offset = index_offset
        self.file_size = file_size
        self.chunks: List[np.ndarray] = []
        self.by_key: Dict[str, List[np.ndarray]] = {}
        self.malformed: List[MalformedEntryError] = []
        self.count = 0

    def add_group(self, key: str, type_code: int, entries: np.ndarray, position: int,
                  strict: bool) -> None:
        min_t = entries["min_time"]
        max_t = entries["max_time"]
        offset = entries["offset"].astype(np.uint64)
        size = entries["size"].astype(np.uint64)
        limit = np.uint64(self.index_offset)
        bad = (
            (min_t > max_t)
            | (size < CHECKSUM_SIZE)
            | (offset < HEADER_SIZE)
            | (offset > limit)
            | (size > limit - np.minimum(offset, limit))
        )

        for i in np.flatnonzero(bad):
            e = entries[i]
            entry = IndexEntry(int(e["min_time"]), int(e["max_time"]), int(e["offset"]), int(e["size"]))
            err = MalformedEntryError(
                key, type_code, position + int(i) * INDEX_ENTRY_SIZE, entry, _entry_violation(entry, self.index_offset)
            )
            if strict:
                raise err
            logger.warning("%s", err)
            self.malformed.append(err)

        good = entries[~bad]
        chunk = np.empty(len(good), dtype=DTYPE_INDEX_ROW)
        for name in ("min_time", "max_time", "offset", "size"):
            chunk[name] = good[name]
        chunk["type"] = type_code
        self.chunks.append(chunk)
        self.by_key.setdefault(key, []).append(np.arange(self.count, self.count + len(chunk), dtype=np.int64))
        self.count += len(chunk)

    def build(self, partial: bool = False) -> IndexTable:
        rows = np.concatenate(self.chunks) if self.chunks else np.empty(0, dtype=DTYPE_INDEX_ROW)
        rows_by_key = {key: np.concatenate(parts) for key, parts in self.by_key.items()}
        return IndexTable(
            rows,
            rows_by_key,
            index_offset=self.index_offset,
            file_size=self.file_size,
            malformed=self.malformed,
            partial=partial,
        )


def _entry_violation(entry: IndexEntry, index_offset: int) -> str:
    reasons = []
    if entry.min_time > entry.max_time:
        reasons.append(f"min_time {entry.min_time} > max_time {entry.max_time}")
    if entry.block_size < CHECKSUM_SIZE:
        reasons.append(f"block_size {entry.block_size} < {CHECKSUM_SIZE}")
    if entry.block_offset < HEADER_SIZE:
        reasons.append(f"block_offset {entry.block_offset} overlaps header")
    if entry.block_offset + entry.block_size > index_offset:
        reasons.append(
            f"block [{entry.block_offset}, {entry.block_offset + entry.block_size}) "
            f"overlaps index at {index_offset}"
        )
    return "; ".join(reasons)


def build_index(
    source: ByteSource,
    file_size: Optional[int] = None,
    *,
    header_size: int = HEADER_SIZE,
    strict: bool = False,
) -> IndexTable:
    """Locate and parse the index region into an :class:`IndexTable`.

    Raises :class:`CorruptIndexError` when the pointer is out of range or any
    field would run past the index pointer. The exception's ``partial``
    attribute carries whatever was parsed before the failure.
    """
    if file_size is None:
        file_size = source.size
    footer_pos = file_size - FOOTER_SIZE
    if footer_pos <= header_size:
        raise CorruptIndexError(f"File of {file_size} bytes is too small to hold an index")

    raw = source.read_at(footer_pos, FOOTER_SIZE)
    if len(raw) < FOOTER_SIZE:
        raise CorruptIndexError("Short read of index pointer", position=footer_pos)
    (index_offset,) = _U64.unpack(raw)
    if not header_size < index_offset < footer_pos:
        raise CorruptIndexError(
            f"Index offset {index_offset} outside ({header_size}, {footer_pos})", position=footer_pos
        )

    region = source.read_at(index_offset, footer_pos - index_offset)
    if len(region) != footer_pos - index_offset:
        raise CorruptIndexError("Short read of index region", position=index_offset)

    builder = _IndexBuilder(index_offset, file_size)
    end = len(region)
    pos = 0

    def need(n: int, what: str) -> None:
        if pos + n > end:
            raise CorruptIndexError(
                f"Truncated index: {what} needs {n} bytes, {end - pos} remain",
                position=index_offset + pos,
                partial=builder.build(partial=True),
            )

    while pos < end:
        need(_U16.size, "key length")
        (key_len,) = _U16.unpack_from(region, pos)
        pos += _U16.size

        need(key_len, "key")
        try:
            key = region[pos:pos + key_len].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidEncodingError(
                f"Series key is not valid UTF-8: {exc.reason}",
                position=index_offset + pos,
                partial=builder.build(partial=True),
            ) from exc
        pos += key_len

        need(_U8.size + _U16.size, "type and entry count")
        (type_code,) = _U8.unpack_from(region, pos)
        (count,) = _U16.unpack_from(region, pos + _U8.size)
        pos += _U8.size + _U16.size

        need(count * INDEX_ENTRY_SIZE, f"{count} index entries")
        if count:
            entries = np.frombuffer(region, dtype=DTYPE_INDEX_ENTRY, count=count, offset=pos)
        else:
            entries = np.empty(0, dtype=DTYPE_INDEX_ENTRY)
        builder.add_group(key, type_code, entries, index_offset + pos, strict)
        pos += count * INDEX_ENTRY_SIZE

    table = builder.build()
    logger.debug(
        "Parsed TSM index at %d: %d keys, %d entries, %d malformed",
        index_offset, len(table), table.entry_count, len(table.malformed),
    )
    return table


# --------------------------------------------------------------------------------
# Blocks
# --------------------------------------------------------------------------------

def read_block(source: ByteSource, entry: IndexEntry, *, verify: bool = True) -> bytes:
    """Positioned read of one block; returns the payload without its checksum."""
    if entry.block_size < CHECKSUM_SIZE:
        raise MalformedBlockError(
            f"Block at offset {entry.block_offset} has size {entry.block_size}, "
            f"too small for a {CHECKSUM_SIZE}-byte checksum",
            entry,
        )

    raw = source.read_at(entry.block_offset, entry.block_size)
    if len(raw) != entry.block_size:
        raise MalformedBlockError(
            f"Short read at offset {entry.block_offset}: wanted {entry.block_size} bytes, got {len(raw)}",
            entry,
        )

    (stored,) = _U32.unpack_from(raw, 0)
    payload = raw[CHECKSUM_SIZE:]
    if verify:
        actual = zlib.crc32(payload) & 0xFFFFFFFF
        if actual != stored:
            raise ChecksumError(entry, stored, actual)
    return payload


# --------------------------------------------------------------------------------
# Queries
# --------------------------------------------------------------------------------

@dataclass(frozen=True)
class BlockResult:
    type_code: int
    entry: IndexEntry
    payload: Optional[bytes] = None
    error: Optional[BlockError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> bytes:
        if self.error is not None:
            raise self.error
        assert self.payload is not None
        return self.payload


class BlockIterator:
    """Pull-based iterator reading one block per ``next()`` call.

    The position advances before the read, so a :class:`BlockError` raised for
    one block leaves the iterator ready to return the next one.
    """

    def __init__(self, source: ByteSource, plan: Sequence[Tuple[int, IndexEntry]], verify: bool):
        self._source = source
        self._plan = plan
        self._verify = verify
        self._pos = 0

    def __iter__(self) -> "BlockIterator":
        return self

    def __next__(self) -> bytes:
        if self._pos >= len(self._plan):
            raise StopIteration
        _, entry = self._plan[self._pos]
        self._pos += 1
        return read_block(self._source, entry, verify=self._verify)

    @property
    def remaining(self) -> int:
        return len(self._plan) - self._pos


class BlockQuery:
    """Restartable, lazy sequence of block payloads for one key and time range."""

    def __init__(self, source: ByteSource, plan: Sequence[Tuple[int, IndexEntry]], *, verify: bool = True):
        self._source = source
        self._plan = tuple(plan)
        self._verify = verify

    def __iter__(self) -> BlockIterator:
        return BlockIterator(self._source, self._plan, self._verify)

    def __len__(self) -> int:
        return len(self._plan)

    @property
    def entries(self) -> Tuple[Tuple[int, IndexEntry], ...]:
        return self._plan

    def results(self) -> Iterator[BlockResult]:
        """Yield one :class:`BlockResult` per planned block, failures included."""
        for type_code, entry in self._plan:
            try:
                payload = read_block(self._source, entry, verify=self._verify)
            except BlockError as exc:
                yield BlockResult(type_code, entry, error=exc)
            else:
                yield BlockResult(type_code, entry, payload=payload)

    def payloads(self, *, skip_errors: bool = False) -> Iterator[bytes]:
        """Yield payloads; bad blocks are raised, or logged and skipped with ``skip_errors``."""
        for result in self.results():
            if result.error is not None:
                if not skip_errors:
                    raise result.error
                logger.warning("Skipping block: %s", result.error)
                continue
            yield result.unwrap()


def query(
    source: ByteSource,
    index: IndexTable,
    key: str,
    start: Optional[int] = None,
    end: Optional[int] = None,
    *,
    verify: bool = True,
) -> BlockQuery:
    """Plan a lookup of ``key`` over the inclusive range ``[start, end]``.

    Nothing is read until the returned sequence is iterated. A key missing from
    the index, or an inverted range (``start > end``), gives an empty sequence.
    """
    if start is not None and end is not None and start > end:
        return BlockQuery(source, (), verify=verify)
    plan = [index.entry_at(int(row)) for row in index.select(key, start, end)]
    return BlockQuery(source, plan, verify=verify)


# --------------------------------------------------------------------------------
# File reader
# --------------------------------------------------------------------------------

class FastTsmReader:
    """
    Reader for a single TSM file.

    Parameters
    ----------
    path : str | Path | ByteSource
        Path to a .tsm file, or an already-open byte source. Sources passed in
        are left open by :meth:`close`; the caller owns them.
    config : Optional[TsmConfig]
        Reader behaviour; defaults to ``TsmConfig()``.

    Example
    -------
    >>> with FastTsmReader("/var/lib/influxdb/data/000000001-000000001.tsm") as rdr:
    ...     for payload in rdr.lookup("cpu,host=a#!~#usage", start=0, end=10**18):
    ...         decode(payload)
    """

    def __init__(self, path: Union[str, Path, ByteSource], *, config: Optional[TsmConfig] = None):
        self.config = config or TsmConfig()
        if isinstance(path, (str, Path)):
            self.path: Optional[str] = os.fspath(path)
            self._source: Optional[ByteSource] = None
            self._owns_source = True
        else:
            self.path = getattr(path, "path", None)
            self._source = path
            self._owns_source = False

        self._header: Optional[Header] = None
        self._index: Optional[IndexTable] = None

    # ------------------------------ context manager ------------------------------
    def __enter__(self) -> "FastTsmReader":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # --------------------------------- core API ---------------------------------
    def open(self) -> "FastTsmReader":
        """Validate the header and load the index."""
        if self._index is not None:
            return self

        if self._owns_source:
            assert self.path is not None
            self._source = open_source(self.path, self.config.handle_policy)
        assert self._source is not None

        try:
            self._header = validate_header(self._source, self.config.supported_versions)
            self._index = build_index(self._source, self._source.size, strict=self.config.strict_entries)
        except Exception:
            self.close()
            raise

        logger.debug("Opened TSM file %s (version %d)", self.path or "<source>", self._header.version)
        return self

    def close(self) -> None:
        self._index = None
        self._header = None
        if self._owns_source and self._source is not None:
            try:
                self._source.close()
            finally:
                self._source = None

    @property
    def closed(self) -> bool:
        return self._index is None

    @property
    def header(self) -> Header:
        if self._header is None:
            raise RuntimeError("Reader not opened")
        return self._header

    @property
    def index(self) -> IndexTable:
        if self._index is None:
            raise RuntimeError("Reader not opened")
        return self._index

    @property
    def source(self) -> ByteSource:
        if self._source is None or self._index is None:
            raise RuntimeError("Reader not opened")
        return self._source

    def __len__(self) -> int:
        if self._index is None:
            return 0
        return len(self._index)

    def __contains__(self, key: object) -> bool:
        return self._index is not None and key in self._index

    def keys(self) -> List[str]:
        return self.index.keys()

    # -------------------------------- query API ---------------------------------
    def lookup(self, key: str, start: Optional[int] = None, end: Optional[int] = None) -> BlockQuery:
        """Lazy sequence of payloads for ``key`` overlapping ``[start, end]``.

        Both bounds are inclusive and ``None`` leaves a side open. An absent key
        or ``start > end`` yields an empty sequence.
        """
        return query(self.source, self.index, key, start, end, verify=self.config.verify_checksums)

    def read_block(self, entry: IndexEntry) -> bytes:
        return read_block(self.source, entry, verify=self.config.verify_checksums)

    def peek_range(self) -> Tuple[int, Optional[int], Optional[int]]:
        """Return ``(entry_count, min_time, max_time)`` across the whole index.

        ``(0, None, None)`` when the index holds no valid entries.
        """
        rows = self.index.rows
        if len(rows) == 0:
            return 0, None, None
        return len(rows), int(rows["min_time"].min()), int(rows["max_time"].max())

    def index_to_pandas(self, *, time_unit: Optional[str] = None, tz: Optional[str] = None) -> pd.DataFrame:
        return self.index.to_pandas(time_unit=time_unit, tz=tz)

    def key_statistics(self) -> pd.DataFrame:
        return self.index.key_statistics()

    def export_index_csv(self, out_path: str, **kwargs: Any) -> None:
        """Write the index, one row per entry, to ``out_path`` as CSV."""
        self.index_to_pandas(**kwargs).to_csv(out_path, index=False)


def open_tsm(path: Union[str, Path, ByteSource], **kwargs: Any) -> FastTsmReader:
    """Shorthand for ``FastTsmReader(path, **kwargs).open()``."""
    return FastTsmReader(path, **kwargs).open()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console script entry point for tsmpy-tsm command."""
    import argparse

    ap = argparse.ArgumentParser(description="TSM file reader")
    ap.add_argument("path", help="Path to .tsm file")
    ap.add_argument("--info", action="store_true", help="Print header version and index summary")
    ap.add_argument("--keys", action="store_true", help="List series keys with per-key statistics")
    ap.add_argument("--export-index", metavar="CSV", help="Export the index to a CSV path")
    ap.add_argument("--key", help="Dump block payloads (hex) for this series key")
    ap.add_argument("--start", type=int, default=None, help="Inclusive lower time bound")
    ap.add_argument("--end", type=int, default=None, help="Inclusive upper time bound")
    ap.add_argument("--policy", choices=("mmap", "pread", "locked"), default="mmap", help="File handle policy")
    ap.add_argument("--no-verify", action="store_true", help="Skip CRC-32 checks")
    args = ap.parse_args(argv)

    cfg = TsmConfig(handle_policy=args.policy, verify_checksums=not args.no_verify)
    status = 0
    with FastTsmReader(args.path, config=cfg) as rdr:
        if args.info:
            count, start, end = rdr.peek_range()
            idx = rdr.index
            print(
                f"Version: {rdr.header.version}; keys: {len(idx)}; entries: {count}; "
                f"malformed: {len(idx.malformed)}; index offset: {idx.index_offset}; "
                f"time range: [{start}, {end}]"
            )

        if args.keys:
            print(rdr.key_statistics().to_string())

        if args.export_index:
            rdr.export_index_csv(args.export_index)
            print(f"Exported index to {args.export_index}")

        if args.key:
            for result in rdr.lookup(args.key, args.start, args.end).results():
                e = result.entry
                where = f"[{e.min_time}, {e.max_time}] @{e.block_offset}+{e.block_size}"
                if result.ok:
                    print(f"{where}: {result.unwrap().hex()}")
                else:
                    print(f"{where}: error={result.error}")
                    status = 1
    return status


# ------------------------------ small CLI helper ------------------------------
if __name__ == "__main__":
    raise SystemExit(main())
