import csv
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from harvester.schemas import EnrichedProduct
from lch import run as cli


CONFIG = """
run:
  delay_between_requests_ms: 0
  max_products: 5
export:
  formats: [csv]
schedule:
  target_url: https://www.producthunt.com/leaderboard/daily/2025/3/1/all
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("GOOGLE_SHEET_ID", "LCH_OPS_JSON", "DELAY_BETWEEN_REQUESTS", "MAX_PRODUCTS"):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, name: str, text: str) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def test_read_input_candidates_csv(tmp_path):
    p = _write(tmp_path, "products.csv",
               "name,product_url,website_url\nFoo,https://ph.example/posts/foo,foo.io\nBar,,\n")
    cands = cli.read_input_candidates(p)
    assert [c.name for c in cands] == ["Foo", "Bar"]
    assert cands[0].website_url == "https://foo.io"
    assert cands[1].website_url == ""


def test_read_input_candidates_url_list(tmp_path):
    p = _write(tmp_path, "urls.txt", "# launches\nhttps://foo.io\n\nbar.io\n")
    cands = cli.read_input_candidates(p)
    assert [c.website_url for c in cands] == ["https://foo.io", "https://bar.io"]


def test_csv_without_website_column_rejected(tmp_path):
    p = _write(tmp_path, "products.csv", "name,url\nFoo,foo.io\n")
    with pytest.raises(ValueError):
        cli.read_input_candidates(p)


def test_missing_config_exits_1(tmp_path):
    inp = _write(tmp_path, "urls.txt", "https://foo.io\n")
    with pytest.raises(SystemExit) as exc:
        cli.main(["--input", str(inp), "--config", str(tmp_path / "nope.yaml"), "--out", str(tmp_path / "out")])
    assert exc.value.code == 1


def test_invalid_yaml_exits_1(tmp_path):
    cfg = _write(tmp_path, "config.yaml", "run: [unclosed\n")
    inp = _write(tmp_path, "urls.txt", "https://foo.io\n")
    with pytest.raises(SystemExit) as exc:
        cli.main(["--input", str(inp), "--config", str(cfg), "--out", str(tmp_path / "out")])
    assert exc.value.code == 1


def test_missing_input_exits_2(tmp_path):
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    with pytest.raises(SystemExit) as exc:
        cli.main(["--input", str(tmp_path / "nope.txt"), "--config", str(cfg), "--out", str(tmp_path / "out")])
    assert exc.value.code == 2


def test_bad_lexicon_returns_1(tmp_path):
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    inp = _write(tmp_path, "urls.txt", "https://foo.io\n")
    rc = cli.main(["--input", str(inp), "--config", str(cfg), "--out", str(tmp_path / "out"),
                   "--lexicon", str(tmp_path / "nope.yaml"), "--dry-run"])
    assert rc == 1


def test_dry_run_returns_0(tmp_path, capsys):
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    inp = _write(tmp_path, "urls.txt", "https://foo.io\nbar.io\n")
    rc = cli.main(["--input", str(inp), "--config", str(cfg), "--out", str(tmp_path / "out"), "--dry-run"])
    assert rc == 0
    assert "Products to process: 2" in capsys.readouterr().out


def test_advance_date_only(tmp_path):
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    rc = cli.main(["--config", str(cfg), "--advance-date"])
    assert rc == 0
    assert "/2025/3/2/all" in cfg.read_text(encoding="utf-8")


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DELAY_BETWEEN_REQUESTS", "500")
    monkeypatch.setenv("MAX_PRODUCTS", "7")
    monkeypatch.setenv("GOOGLE_SHEET_ID", "abc")
    settings = cli.resolve_settings({"run": {"delay_between_requests_ms": 2000, "max_products": 300}})
    assert settings["delay_ms"] == 500.0
    assert settings["max_products"] == 7
    assert settings["google_sheet_id"] == "abc"


def test_full_run_exports_csv(tmp_path):
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    inp = _write(tmp_path, "urls.txt", "https://foo.io\n")
    out = tmp_path / "out"
    rows = [EnrichedProduct(name="https://foo.io", product_url="", website_url="https://foo.io", email="hello@foo.io")]
    with patch("lch.run.IngestPipeline") as mock_pipeline:
        mock_pipeline.return_value.run.return_value = rows
        rc = cli.main(["--input", str(inp), "--config", str(cfg), "--out", str(out)])
    assert rc == 0
    kwargs = mock_pipeline.call_args.kwargs
    assert kwargs["max_products"] == 5
    assert kwargs["delay_between_requests_s"] == 0.0
    csvs = list(out.glob("launch_contacts_*.csv"))
    assert len(csvs) == 1
    with open(csvs[0], newline="", encoding="utf-8") as f:
        assert list(csv.DictReader(f))[0]["email"] == "hello@foo.io"
    assert not list(out.glob("launch_contacts_*.json"))


def test_requested_upload_without_sheet_id_returns_3(tmp_path):
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    inp = _write(tmp_path, "urls.txt", "https://foo.io\n")
    with patch("lch.run.IngestPipeline") as mock_pipeline:
        mock_pipeline.return_value.run.return_value = []
        rc = cli.main(["--input", str(inp), "--config", str(cfg), "--out", str(tmp_path / "out"), "--upload-sheet"])
    assert rc == 3


def test_configured_upload_uses_latest_csv(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_SHEET_ID", "sheet-123")
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    inp = _write(tmp_path, "urls.txt", "https://foo.io\n")
    with patch("lch.run.IngestPipeline") as mock_pipeline, \
            patch("harvester.sheets.upload_csv_to_sheet") as mock_upload:
        mock_pipeline.return_value.run.return_value = []
        rc = cli.main(["--input", str(inp), "--config", str(cfg), "--out", str(tmp_path / "out")])
    assert rc == 0
    csv_path, sheet_id, sheet_name = mock_upload.call_args[0]
    assert sheet_id == "sheet-123"
    assert Path(csv_path).name.startswith("launch_contacts_")


def test_missing_input_without_upload_returns_2(tmp_path):
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    assert cli.main(["--config", str(cfg), "--out", str(tmp_path / "out")]) == 2


def test_upload_only_pushes_newest_export(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_SHEET_ID", "sheet-123")
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    out = tmp_path / "out"
    out.mkdir()
    old = _write(out, "launch_contacts_20250301_000000.csv", "name\nold\n")
    new = _write(out, "launch_contacts_20250302_000000.csv", "name\nnew\n")
    os.utime(old, (1_000_000, 1_000_000))
    os.utime(new, (2_000_000, 2_000_000))
    with patch("lch.run.IngestPipeline") as mock_pipeline, \
            patch("harvester.sheets.upload_csv_to_sheet") as mock_upload:
        rc = cli.main(["--config", str(cfg), "--out", str(out), "--upload-sheet"])
    assert rc == 0
    mock_pipeline.assert_not_called()
    csv_path, sheet_id, _ = mock_upload.call_args[0]
    assert Path(csv_path) == new
    assert sheet_id == "sheet-123"


def test_upload_only_without_exports_returns_3(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_SHEET_ID", "sheet-123")
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    with patch("harvester.sheets.upload_csv_to_sheet") as mock_upload:
        rc = cli.main(["--config", str(cfg), "--out", str(tmp_path / "empty"), "--upload-sheet"])
    assert rc == 3
    mock_upload.assert_not_called()


def test_upload_only_failure_returns_3(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_SHEET_ID", "sheet-123")
    cfg = _write(tmp_path, "config.yaml", CONFIG)
    out = tmp_path / "out"
    out.mkdir()
    _write(out, "launch_contacts_20250301_000000.csv", "name\nfoo\n")
    with patch("harvester.sheets.upload_csv_to_sheet", side_effect=RuntimeError("quota")):
        rc = cli.main(["--config", str(cfg), "--out", str(out), "--upload-sheet"])
    assert rc == 3
