from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import AsyncMock, patch

from bulk_import.cli.__main__ import main as cli_main
from bulk_import.models.import_result import ImportResult
from conftest import PARTY_LABELS, make_xlsx, party_row

SUMMARY_RE = re.compile(
    r"^SUMMARY entity=(party|product) rows=\d+ valid=\d+ invalid=\d+ imported=\d+ server_errors=\d+ "
    r"status=(success|partial|failed|ready_to_submit)$"
)


def test_summary_line_format(write_config: Path, party_file: Path, capsys):
    with patch("bulk_import.cli.__main__.HttpBatchSubmitter") as mock_cls:
        mock_cls.return_value.submit_batch = AsyncMock(return_value=ImportResult(3, ("Row 2: duplicate tax ID",)))
        cli_main(["import", "party", str(party_file)])
    lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("SUMMARY")]
    assert len(lines) == 1
    assert SUMMARY_RE.match(lines[0])
    assert lines[0] == "SUMMARY entity=party rows=5 valid=4 invalid=1 imported=3 server_errors=1 status=partial"


def test_server_errors_truncated_in_output(write_config: Path, temp_workdir: Path, capsys):
    f = temp_workdir / "data" / "many.xlsx"
    f.write_bytes(make_xlsx(PARTY_LABELS, [party_row(n) for n in range(1, 16)]))
    errors = tuple(f"Row {n}: duplicate tax ID" for n in range(1, 13))
    with patch("bulk_import.cli.__main__.HttpBatchSubmitter") as mock_cls:
        mock_cls.return_value.submit_batch = AsyncMock(return_value=ImportResult(3, errors))
        cli_main(["import", "party", str(f)])
    out = capsys.readouterr().out.splitlines()
    server_lines = [line for line in out if line.startswith("WARN server:")]
    assert len(server_lines) == 11
    assert server_lines[-1] == "WARN server: +2 more"
