"""
Launch Contact Harvester - CLI Runner

Usage:
  python -m lch.run \
    --input products.csv \
    --config config/example.yaml \
    --out ./out

Dry run (validate only):
  python -m lch.run --input products.csv --config config/example.yaml --out ./out --dry-run

Roll the leaderboard date in the config and exit:
  python -m lch.run --config config/example.yaml --advance-date

Upload the newest export CSV in --out to the configured spreadsheet:
  python -m lch.run --config config/example.yaml --out ./out --upload-sheet

Exit codes:
  0 - success
  1 - config error (file missing, invalid YAML or invalid lexicon)
  2 - input error (input file missing or unreadable)
  3 - processing error (runtime, export or requested upload failures)
"""
from __future__ import annotations

import argparse
import csv
import os
import platform
import sys
import time
from pathlib import Path
from typing import List, Optional

import psutil
import yaml

from harvester.diagnostics import DiagnosticsCapture
from harvester.lexicons import LexiconError, load_lexicon
from harvester.ops_logger import OpsLogger
from harvester.pipeline.export import EXPORT_PREFIX, ProductExporter, find_latest_csv
from harvester.pipeline.extractors import WebsiteContactExtractor
from harvester.pipeline.ingest import IngestPipeline, WebsitePrefilter
from harvester.pipeline.navigation import BrowserSessionProvider, NavigationController
from harvester.schemas import ProductCandidate
from lch.schedule import ScheduleError, advance_target_url


def validate_input(input_path: Path) -> None:
    if not input_path.exists() or not input_path.is_file():
        print(f"Input error: file not found: {input_path}", file=sys.stderr)
        sys.exit(2)


def validate_config(config_path: Path) -> dict:
    if not config_path.exists() or not config_path.is_file():
        print(f"Config error: file not found: {config_path}", file=sys.stderr)
        sys.exit(1)
    try:
        with config_path.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        print(f"Config error: invalid YAML in {config_path}: {e}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(cfg, dict):
        print(f"Config error: {config_path} must contain a mapping", file=sys.stderr)
        sys.exit(1)
    return cfg


def ensure_out_dir(out_dir: Path) -> None:
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        # sanity check: can we write here?
        test_file = out_dir / ".write_test"
        test_file.write_text("ok", encoding="utf-8")
        test_file.unlink(missing_ok=True)
    except OSError as e:
        print(f"Output error: cannot write to {out_dir}: {e}", file=sys.stderr)
        sys.exit(3)


def _section(cfg: dict, name: str) -> dict:
    value = cfg.get(name) if isinstance(cfg, dict) else None
    return value if isinstance(value, dict) else {}


def normalize_website(s: str) -> str:
    # Bare domains get https://; anything else is kept for URL validation downstream
    s = (s or "").strip()
    if not s:
        return ""
    if s.startswith("http://") or s.startswith("https://"):
        return s
    if "." in s and " " not in s and "/" not in s.split(".", 1)[0]:
        return f"https://{s}"
    return s


def read_input_candidates(input_path: Path) -> List[ProductCandidate]:
    """Read launch candidates from a CSV (name,product_url,website_url) or a URL list."""
    if input_path.suffix.lower() == ".csv":
        with input_path.open("r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            fields = [c.strip() for c in (reader.fieldnames or [])]
            if "website_url" not in fields:
                raise ValueError(f"CSV input must have a 'website_url' column: {input_path}")
            out: List[ProductCandidate] = []
            for row in reader:
                row = {(k or "").strip(): v for k, v in row.items()}
                out.append(ProductCandidate(
                    name=row.get("name") or "",
                    product_url=row.get("product_url") or "",
                    website_url=normalize_website(row.get("website_url") or ""),
                ))
            return out
    out = []
    for line in input_path.read_text(encoding="utf-8").splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        out.append(ProductCandidate(name=s, website_url=normalize_website(s)))
    return out


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        print(f"Config error: {name} must be a number, got {raw!r}", file=sys.stderr)
        sys.exit(1)


def resolve_settings(cfg: dict) -> dict:
    """Merge config sections with environment overrides into flat run settings."""
    run_cfg = _section(cfg, "run")
    export_cfg = _section(cfg, "export")
    lexicon_cfg = _section(cfg, "lexicon")
    logging_cfg = _section(_section(cfg, "ops"), "logging")
    try:
        delay_ms = float(run_cfg.get("delay_between_requests_ms", 2000) or 0)
        max_products = run_cfg.get("max_products", 300)
        max_products = int(max_products) if max_products else None
    except (TypeError, ValueError) as e:
        print(f"Config error: invalid run settings: {e}", file=sys.stderr)
        sys.exit(1)
    formats = export_cfg.get("formats") or ["csv", "json"]
    return {
        "delay_ms": _env_number("DELAY_BETWEEN_REQUESTS", delay_ms, float),
        "max_products": _env_number("MAX_PRODUCTS", max_products, int),
        "headless": bool(run_cfg.get("headless", True)),
        "lexicon_path": lexicon_cfg.get("path"),
        "formats": [str(x).lower() for x in formats],
        "google_sheet_id": os.environ.get("GOOGLE_SHEET_ID") or export_cfg.get("google_sheet_id"),
        "sheet_name": export_cfg.get("sheet_name"),
        "ops_json": bool(logging_cfg.get("ops_json", False)),
    }


def emit_summary(ops_logger: Optional[OpsLogger], stats: dict, proc_start: float) -> None:
    wall_s = max(0.0, time.perf_counter() - proc_start)
    p = psutil.Process()
    with p.oneshot():
        rss_mb = round(p.memory_info().rss / (1024 * 1024), 1)
        cpu_pct = round(p.cpu_percent(interval=None), 1)
    summary = {
        "summary": True,
        **stats,
        "durations": {"wall_s": round(wall_s, 2)},
        "resources": {"cpu_pct": cpu_pct, "rss_mb": rss_mb},
        "python": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        "host": {"platform": platform.system(), "release": platform.release(), "machine": platform.machine()},
    }
    if ops_logger:
        ops_logger.emit(summary)


def upload_sheet(csv_path: Optional[Path], settings: dict) -> bool:
    """Upload csv_path to the configured spreadsheet; True when the upload failed."""
    from harvester.sheets import SheetsError, upload_csv_to_sheet
    try:
        if not settings["google_sheet_id"]:
            raise SheetsError("GOOGLE_SHEET_ID / export.google_sheet_id is not set")
        upload_csv_to_sheet(csv_path, settings["google_sheet_id"], settings["sheet_name"])
    except Exception as e:
        print(f"Sheets upload error: {e}", file=sys.stderr)
        return True
    return False


def upload_latest_export(out_dir: Path, settings: dict) -> int:
    """Upload-only mode: push the newest export CSV in out_dir."""
    csv_path = find_latest_csv(out_dir)
    if csv_path is None:
        print(f"Sheets upload error: no {EXPORT_PREFIX}*.csv found in {out_dir}", file=sys.stderr)
        return 3
    print(f"Uploading latest export: {csv_path}")
    return 3 if upload_sheet(csv_path, settings) else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="lch.run", description="Launch contact harvester runner")
    parser.add_argument("--input", "-i", default=None, help="Products CSV (name,product_url,website_url) or URL list")
    parser.add_argument("--config", "-c", required=True, help="Path to YAML config file")
    parser.add_argument("--out", "-o", default="./out", help="Output directory (default ./out)")
    parser.add_argument("--dry-run", action="store_true", help="Validate inputs/config and exit")
    parser.add_argument("--lexicon", default=None, help="YAML lexicon override (takes precedence over lexicon.path)")
    parser.add_argument("--headed", action="store_true", help="Run the browser with a visible window")
    parser.add_argument("--prefilter", action="store_true", help="HEAD-check websites before opening a browser session")
    parser.add_argument("--prefilter-timeout", type=float, default=5.0, help="Prefilter check timeout seconds (default 5.0)")
    parser.add_argument("--upload-sheet", action="store_true", help="Upload the run CSV (without --input: the newest export in --out) to the spreadsheet; failures exit 3")
    parser.add_argument("--advance-date", action="store_true", help="Advance schedule.target_url by one day")
    parser.add_argument("--ops-log", default=None, help="Path to ops JSONL log file (default: <out>/ops.log)")
    parser.add_argument("--ops-stdout", action="store_true", help="Also mirror ops JSON to stdout")
    args = parser.parse_args(argv)

    config_path = Path(args.config)
    out_dir = Path(args.out)
    cfg = validate_config(config_path)

    if args.advance_date:
        try:
            advance_target_url(config_path)
        except ScheduleError as e:
            print(f"Config error: {e}", file=sys.stderr)
            return 1

    if not args.input:
        if args.upload_sheet:
            return upload_latest_export(out_dir, resolve_settings(cfg))
        if args.advance_date:
            return 0
        print("Input error: --input is required", file=sys.stderr)
        return 2
    input_path = Path(args.input)
    validate_input(input_path)
    settings = resolve_settings(cfg)

    try:
        lexicon = load_lexicon(args.lexicon or settings["lexicon_path"])
    except LexiconError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    try:
        candidates = read_input_candidates(input_path)
    except (OSError, UnicodeDecodeError, ValueError) as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2

    ensure_out_dir(out_dir)

    if args.dry_run:
        print("✅ Dry-run validation passed")
        print(f" - Input file: {input_path}")
        print(f" - Config: {config_path}")
        print(f" - Output dir: {out_dir}")
        print(f" - Lexicon: {lexicon.version}")
        print(f" - Products to process: {len(candidates)}")
        return 0

    ops_log_path = Path(args.ops_log) if args.ops_log else (out_dir / "ops.log")
    ops_logger = OpsLogger(ops_log_path, also_stdout=bool(args.ops_stdout))

    navigator = NavigationController(
        provider=BrowserSessionProvider(headless=settings["headless"] and not args.headed),
        lexicon=lexicon,
        diagnostics=DiagnosticsCapture(out_dir / "diagnostics"),
    )
    extractor = WebsiteContactExtractor(navigator=navigator, lexicon=lexicon, ops_logger=ops_logger)
    # Enable OPS JSON logs by config flag (also gated by env LCH_OPS_JSON)
    extractor.ops_json_enabled = settings["ops_json"]
    pipeline = IngestPipeline(
        extractor=extractor,
        delay_between_requests_s=settings["delay_ms"] / 1000.0,
        max_products=settings["max_products"],
        prefilter=WebsitePrefilter(timeout_s=args.prefilter_timeout) if args.prefilter else None,
    )

    print(f"Python: {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    print(f"Lexicon: {lexicon.version} | delay={settings['delay_ms']:.0f}ms | max_products={settings['max_products']}")

    proc_start = time.perf_counter()
    try:
        products = pipeline.run(candidates)
    except Exception as e:
        print(f"Processing error: {e}", file=sys.stderr)
        return 3
    finally:
        pipeline.close()

    exporter = ProductExporter(output_dir=out_dir)
    csv_path = None
    try:
        if "csv" in settings["formats"] or args.upload_sheet or settings["google_sheet_id"]:
            csv_path = exporter.to_csv(products)
        if "json" in settings["formats"]:
            exporter.to_json(products)
    except OSError as e:
        print(f"Export error: {e}", file=sys.stderr)
        return 3

    stats = exporter.get_export_stats(products)
    emit_summary(ops_logger, stats, proc_start)
    print(f"   Processed products: {stats['total_products']}")
    print(f"   With email: {stats['with_email']} | social: {stats['with_social_handle']} | "
          f"linkedin: {stats['with_linkedin_url']} | contact page: {stats['with_contact_page_url']}")

    if args.upload_sheet or settings["google_sheet_id"]:
        if upload_sheet(csv_path, settings) and args.upload_sheet:
            return 3
    else:
        print("Spreadsheet export skipped (GOOGLE_SHEET_ID not set)")

    print("🏁 Done.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
