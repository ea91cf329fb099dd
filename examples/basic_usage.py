#!/usr/bin/env python3
"""
Basic usage examples for tsmpy package.

This example demonstrates how to open a TSM file, look up a series key over a
time range, and inspect the index with pandas.
"""

import tsmpy
from pathlib import Path


def lookup_example():
    """Example of reading block payloads for one key."""
    print("=== TSM Lookup Example ===")

    # Replace with your actual TSM file path
    tsm_path = "/path/to/your/000000001-000000001.tsm"

    if not Path(tsm_path).exists():
        print(f"TSM file not found: {tsm_path}")
        print("Please update the path to point to an actual TSM file.")
        return

    with tsmpy.open_tsm(tsm_path) as r:
        print(f"File: {tsm_path}")
        print(f"Version: {r.header.version}")
        print(f"Keys: {len(r):,}")

        key = r.keys()[0]
        query = r.lookup(key)
        print(f"\nBlocks for {key!r}: {len(query)}")

        for result in query.results():
            entry = result.entry
            if result.ok:
                print(f"  [{entry.min_time}, {entry.max_time}] {len(result.unwrap())} bytes")
            else:
                print(f"  [{entry.min_time}, {entry.max_time}] unreadable: {result.error}")


def index_example():
    """Example of inspecting the index as a DataFrame."""
    print("\n=== TSM Index Example ===")

    tsm_path = "/path/to/your/000000001-000000001.tsm"

    if not Path(tsm_path).exists():
        print(f"TSM file not found: {tsm_path}")
        return

    with tsmpy.FastTsmReader(tsm_path, config=tsmpy.TsmConfig(handle_policy="pread")) as r:
        print(r.key_statistics().head())
        frame = r.index_to_pandas(time_unit="ns")
        print(frame.head())
        if r.index.malformed:
            print(f"\n{len(r.index.malformed)} malformed index entries")


def shard_example():
    """Example of reading one key across a directory of TSM files."""
    print("\n=== TSM Shard Example ===")

    shard_dir = "/path/to/your/shard"

    if not Path(shard_dir).exists():
        print(f"Shard directory not found: {shard_dir}")
        return

    reader = tsmpy.TsmReader(shard_dir, max_concurrency=4)
    files = reader.list_files()
    series = reader.read_series(files, "cpu,host=a#!~#usage_user", skip_errors=True)
    for path, payloads in series.items():
        print(f"{path}: {len(payloads)} blocks")


if __name__ == "__main__":
    print("tsmpy Basic Usage Examples")
    print("=" * 50)

    lookup_example()
    index_example()
    shard_example()
