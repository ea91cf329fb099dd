from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from tsmpy.parser.errors import CorruptIndexError, InvalidEncodingError, MalformedEntryError
from tsmpy.parser.sources import BytesSource
from tsmpy.parser.tsm_parse import FastTsmReader, IndexEntry, TsmConfig, build_index

from tests.utils_tsm import (
    assemble,
    build_tsm,
    pack_block,
    pack_entry,
    pack_group,
    sample_file_bytes,
    write_tsm_file,
)


def test_sample_index_layout() -> None:
    data = sample_file_bytes()
    assert len(data) == 53

    table = build_index(BytesSource(data))

    assert table.index_offset == 11
    assert table.file_size == 53
    assert table.keys() == ["k"]
    assert table.entries("k") == [(0, IndexEntry(0, 0, 5, 6))]
    assert table.malformed == ()
    assert not table.partial


def test_groups_sharing_a_key_are_merged_in_encounter_order() -> None:
    content, locations = build_tsm(
        [
            ("cpu", 1, [(10, 20, b"a"), (0, 5, b"b")]),
            ("mem", 2, [(0, 1, b"c")]),
            ("cpu", 3, [(30, 40, b"d")]),
        ]
    )
    table = build_index(BytesSource(content))

    assert table.keys() == ["cpu", "mem"]
    assert len(table) == 2
    assert table.entry_count == 4
    cpu = table.entries("cpu")
    assert [t for t, _ in cpu] == [1, 1, 3]
    assert [(e.block_offset, e.block_size) for _, e in cpu] == locations[0] + locations[2]
    assert table.types("cpu") == (1, 3)
    assert table.time_range("cpu") == (0, 40)
    assert table.time_range("missing") is None
    assert "mem" in table and "disk" not in table


def test_unrecognized_type_code_is_retained() -> None:
    content, _ = build_tsm([("k", 0xEE, [(0, 0, b"x")])])
    table = build_index(BytesSource(content))
    assert table.types("k") == (0xEE,)


def test_negative_timestamps_are_signed() -> None:
    content, _ = build_tsm([("k", 0, [(-100, -1, b"x")])])
    table = build_index(BytesSource(content))
    assert table.time_range("k") == (-100, -1)


def test_index_arrays_are_read_only() -> None:
    table = build_index(BytesSource(sample_file_bytes()))
    with pytest.raises(ValueError):
        table.rows["min_time"][0] = 99
    with pytest.raises(ValueError):
        table.rows_for("k")[0] = 3


def test_every_parsed_entry_satisfies_invariants() -> None:
    content, _ = build_tsm(
        [("a", 0, [(0, 10, b"xx"), (11, 20, b"")]), ("b", 1, [(5, 5, b"yyyy")])]
    )
    table = build_index(BytesSource(content))
    for key in table.keys():
        for _, entry in table.entries(key):
            assert entry.min_time <= entry.max_time
            assert entry.block_size >= 4
            assert entry.block_offset + entry.block_size <= table.index_offset


@pytest.mark.parametrize("pointer", [0, 5, 45, 46, 2**63])
def test_pointer_out_of_range(pointer: int) -> None:
    data = pack_block(b"AB")
    index = pack_group("k", 0, [pack_entry(0, 0, 5, 6)])
    content = assemble(data, index, pointer=pointer)
    with pytest.raises(CorruptIndexError):
        build_index(BytesSource(content))


def test_file_too_small_for_index() -> None:
    with pytest.raises(CorruptIndexError):
        build_index(BytesSource(b"\x16\xd1\x16\xd1\x01" + b"\x00" * 8))


def test_entry_count_overshooting_boundary_is_corrupt() -> None:
    data = pack_block(b"AB")
    index = pack_group("k", 0, [pack_entry(0, 0, 5, 6)], count=2)
    with pytest.raises(CorruptIndexError) as excinfo:
        build_index(BytesSource(assemble(data, index)))
    assert excinfo.value.partial is not None
    assert excinfo.value.partial.partial


def test_key_length_overshooting_boundary_is_corrupt() -> None:
    data = pack_block(b"AB")
    index = b"\x00\x40k"
    with pytest.raises(CorruptIndexError):
        build_index(BytesSource(assemble(data, index)))


def test_trailing_garbage_is_corrupt() -> None:
    data = pack_block(b"AB")
    index = pack_group("k", 0, [pack_entry(0, 0, 5, 6)]) + b"\x00"
    with pytest.raises(CorruptIndexError):
        build_index(BytesSource(assemble(data, index)))


def test_partial_index_exposes_groups_before_failure() -> None:
    data = pack_block(b"AB")
    index = pack_group("a", 0, [pack_entry(0, 0, 5, 6)]) + pack_group("b", 0, [], count=3)
    with pytest.raises(CorruptIndexError) as excinfo:
        build_index(BytesSource(assemble(data, index)))

    partial = excinfo.value.partial
    assert partial is not None and partial.partial
    assert partial.keys() == ["a"]
    assert partial.entries("a") == [(0, IndexEntry(0, 0, 5, 6))]
    assert "partial" in repr(partial)


def test_invalid_utf8_key() -> None:
    data = pack_block(b"AB")
    index = pack_group(b"\xff\xfe", 0, [pack_entry(0, 0, 5, 6)])
    with pytest.raises(InvalidEncodingError) as excinfo:
        build_index(BytesSource(assemble(data, index)))
    assert isinstance(excinfo.value, CorruptIndexError)


def test_malformed_entries_are_reported_without_dropping_siblings() -> None:
    blk = pack_block(b"AB")
    data = blk + blk
    entries = [
        pack_entry(0, 0, 5, 6),        # valid
        pack_entry(9, 1, 5, 6),        # min_time > max_time
        pack_entry(0, 0, 5, 3),        # too small for a checksum
        pack_entry(0, 0, 11, 600),     # runs into the index
        pack_entry(0, 0, 2, 6),        # overlaps the header
        pack_entry(1, 2, 11, 6),       # valid
    ]
    content = assemble(data, pack_group("k", 4, entries))
    table = build_index(BytesSource(content))

    assert [e for _, e in table.entries("k")] == [IndexEntry(0, 0, 5, 6), IndexEntry(1, 2, 11, 6)]
    assert len(table.malformed) == 4
    assert all(isinstance(err, MalformedEntryError) for err in table.malformed)
    assert [err.entry.block_size for err in table.malformed] == [6, 3, 600, 6]
    first = table.malformed[0]
    assert first.key == "k" and first.type_code == 4
    # header 5 + data 12 + key_len 2 + key 1 + type 1 + count 2, then one 28-byte entry
    assert first.position == 5 + 12 + 6 + 28
    assert "min_time" in first.reason


def test_strict_entries_raises_first_malformed(tmp_path: Path) -> None:
    data = pack_block(b"AB")
    content = assemble(data, pack_group("k", 0, [pack_entry(0, 0, 5, 3)]))
    path = write_tsm_file(tmp_path, "strict.tsm", content)

    with pytest.raises(MalformedEntryError):
        FastTsmReader(path, config=TsmConfig(strict_entries=True)).open()

    with FastTsmReader(path) as reader:
        assert reader.index.entries("k") == []
        assert len(reader.index.malformed) == 1


def test_empty_group_keeps_key() -> None:
    data = pack_block(b"AB")
    content = assemble(data, pack_group("k", 0, [pack_entry(0, 0, 5, 6)]) + pack_group("z", 0, []))
    table = build_index(BytesSource(content))
    assert table.keys() == ["k", "z"]
    assert table.entries("z") == []


def test_index_to_pandas_and_statistics() -> None:
    content, locations = build_tsm(
        [
            ("cpu", 1, [(0, 1_000_000, b"aa"), (2_000_000, 3_000_000, b"bbb")]),
            ("mem", 2, [(500, 600, b"c")]),
        ]
    )
    table = build_index(BytesSource(content))

    frame = table.to_pandas()
    assert list(frame.columns) == ["Key", "Type", "MinTime", "MaxTime", "BlockOffset", "BlockSize"]
    assert frame["Key"].tolist() == ["cpu", "cpu", "mem"]
    assert frame["BlockOffset"].tolist() == [loc[0] for loc in locations[0] + locations[1]]
    assert frame["MinTime"].dtype == np.int64

    timed = table.to_pandas(time_unit="ns", tz="America/New_York")
    assert str(timed["MinTime"].dt.tz) == "America/New_York"

    stats = table.key_statistics()
    assert stats.loc["cpu", "Blocks"] == 2
    assert stats.loc["cpu", "MinTime"] == 0
    assert stats.loc["cpu", "MaxTime"] == 3_000_000
    assert stats.loc["cpu", "Bytes"] == 6 + 7
    assert stats.loc["mem", "Types"] == (2,)


def test_failed_open_releases_source(tmp_path: Path) -> None:
    content = assemble(pack_block(b"AB"), b"\x00", pointer=11)
    path = write_tsm_file(tmp_path, "corrupt.tsm", content)
    reader = FastTsmReader(path)
    with pytest.raises(CorruptIndexError):
        reader.open()
    assert reader.closed
    with pytest.raises(RuntimeError):
        reader.lookup("k")
