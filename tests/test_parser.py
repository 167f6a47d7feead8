import json

import pytest

from ingestor.core.errors import SourceError
from ingestor.sources.morningstar_parser import extract_records, parse_file, parse_payload
from conftest import make_raw_fund

FUNDS = [make_raw_fund(1), make_raw_fund(2)]


@pytest.mark.parametrize(
    "payload",
    [
        FUNDS,
        {"data": FUNDS},
        {"results": FUNDS, "page": 1},
        {"data": {"records": FUNDS}},
        {"meta": {"count": 2}, "schemes": FUNDS},
    ],
)
def test_extract_records_shapes(payload):
    assert extract_records(payload) == FUNDS


@pytest.mark.parametrize("payload", [{"status": "ok"}, "funds", 42, None])
def test_extract_records_rejects_non_lists(payload):
    with pytest.raises(SourceError):
        extract_records(payload)


def test_parse_payload_from_text_and_bytes():
    text = json.dumps({"funds": FUNDS})
    assert parse_payload(text) == FUNDS
    assert parse_payload(text.encode("utf-8")) == FUNDS


def test_parse_payload_bad_json():
    with pytest.raises(SourceError) as excinfo:
        parse_payload("{not json", source="manual")

    assert excinfo.value.source == "manual"


def test_parse_file(tmp_path):
    path = tmp_path / "funds.json"
    path.write_text(json.dumps(FUNDS), encoding="utf-8")

    assert parse_file(path) == FUNDS


def test_parse_missing_file(tmp_path):
    with pytest.raises(SourceError):
        parse_file(tmp_path / "missing.json")
