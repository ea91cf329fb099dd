"""Lightweight utility to inspect TSM files."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List, Optional, Sequence

from tsmpy.parser.errors import TsmError
from tsmpy.parser.tsm_parse import FastTsmReader


def _peek_file(path: Path) -> dict:
    entry: dict = {"path": str(path)}
    if not path.exists():
        entry["error"] = "not found"
        return entry

    try:
        with FastTsmReader(str(path)) as reader:
            n, start, end = reader.peek_range()
            entry.update(
                {
                    "version": reader.header.version,
                    "keys": len(reader),
                    "count": n,
                    "malformed": len(reader.index.malformed),
                    "start": start,
                    "end": end,
                }
            )
    except (TsmError, OSError) as exc:
        entry["error"] = str(exc)
    return entry


def _gather_paths(root: Path, pattern: Optional[str]) -> Sequence[Path]:
    if root.is_dir():
        glob = pattern or "*.tsm"
        return sorted(root.glob(glob))
    return [root]


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Peek at TSM index summaries")
    parser.add_argument("path", help="Path to a .tsm file or directory")
    parser.add_argument("--glob", help="Glob when --path is a directory")
    parser.add_argument("--json", action="store_true", help="Emit JSON output")
    args = parser.parse_args(argv)

    targets = _gather_paths(Path(args.path), args.glob)

    results: List[dict] = [_peek_file(path) for path in targets]

    if args.json:
        payload = results[0] if len(results) == 1 else results
        print(json.dumps(payload))
    else:
        for result in results:
            if "error" in result:
                print(f"{result['path']}: error={result['error']}")
            else:
                print(
                    f"{result['path']}: version={result['version']} keys={result['keys']} "
                    f"count={result['count']} start={result['start']} end={result['end']}"
                )

    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
