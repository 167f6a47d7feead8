import json

import pytest

from ingestor.main import build_parser, main
from ingestor.utils.logger import setup_logging
from conftest import make_raw_fund


@pytest.fixture(autouse=True)
def restore_test_logging():
    yield
    # main() rebinds the console sink to the captured stderr
    setup_logging("DEBUG", file_logging=False)


def test_parser_parses_as_of():
    args = build_parser().parse_args(["--dry-run", "run", "--as-of", "2025-09"])

    assert args.dry_run
    assert args.command == "run"
    assert args.as_of.month == 9


def test_parser_rejects_bad_as_of():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["run", "--as-of", "last month"])


def test_dry_run_file_ingestion(tmp_path, capsys, settings):
    path = tmp_path / "funds.json"
    path.write_text(json.dumps({"data": [make_raw_fund(1), make_raw_fund(2)]}), encoding="utf-8")

    exit_code = main(["--dry-run", "--no-file-logs", "file", str(path), "--as-of", "2025-09-14"])

    report = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert report["added"] == 2
    assert report["timestamp"] == "2025-09-01T00:00:00+00:00"


def test_failed_batch_exits_non_zero(tmp_path, capsys, settings):
    path = tmp_path / "funds.json"
    path.write_text(json.dumps([make_raw_fund(1, fund_id=None)]), encoding="utf-8")

    assert main(["--dry-run", "--no-file-logs", "file", str(path)]) == 1


def test_unreadable_file_exits_non_zero(tmp_path, settings):
    assert main(["--dry-run", "--no-file-logs", "file", str(tmp_path / "missing.json")]) == 1


def test_scheduler_refuses_dry_run(settings):
    assert main(["--dry-run", "--no-file-logs", "scheduler"]) == 1
