from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

from tsmpy.parser import tsm_parse

from tests.utils_tsm import build_tsm, sample_file_bytes, write_tsm_file

_ROOT = Path(__file__).resolve().parents[1]


def test_tsm_peek_cli_json(tmp_path: Path) -> None:
    path = write_tsm_file(tmp_path, "cli.tsm", sample_file_bytes())

    result = subprocess.run(
        [sys.executable, "-m", "tsm_peek", str(path), "--json"],
        check=True,
        capture_output=True,
        text=True,
        cwd=_ROOT,
    )

    payload = json.loads(result.stdout)
    assert payload["path"].endswith("cli.tsm")
    assert payload["version"] == 1
    assert payload["keys"] == 1
    assert payload["count"] == 1
    assert payload["start"] == 0
    assert payload["end"] == 0


def test_tsm_peek_directory_reports_errors(tmp_path: Path, capsys) -> None:
    import tsm_peek

    write_tsm_file(tmp_path, "a.tsm", sample_file_bytes())
    write_tsm_file(tmp_path, "b.tsm", b"not a tsm file")

    assert tsm_peek.main([str(tmp_path), "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)

    assert [Path(p["path"]).name for p in payload] == ["a.tsm", "b.tsm"]
    assert payload[0]["count"] == 1
    assert "magic" in payload[1]["error"].lower()


def test_tsm_main_info_and_dump(tmp_path: Path, capsys) -> None:
    content, _ = build_tsm([("cpu", 1, [(0, 10, b"\x01\x02"), (11, 20, b"\x03")])])
    path = write_tsm_file(tmp_path, "main.tsm", content)
    csv_path = tmp_path / "index.csv"

    status = tsm_parse.main(
        [str(path), "--info", "--key", "cpu", "--start", "5", "--export-index", str(csv_path)]
    )
    out = capsys.readouterr().out

    assert status == 0
    assert "Version: 1; keys: 1; entries: 2" in out
    assert "0102" in out and "03" in out
    assert csv_path.read_text().splitlines()[0] == "Key,Type,MinTime,MaxTime,BlockOffset,BlockSize"


def test_tsm_main_reports_bad_block(tmp_path: Path, capsys) -> None:
    data = bytearray(sample_file_bytes())
    data[9] ^= 0xFF
    path = write_tsm_file(tmp_path, "bad.tsm", bytes(data))

    assert tsm_parse.main([str(path), "--key", "k"]) == 1
    assert "error=CRC mismatch" in capsys.readouterr().out
