"""stockguard command line.

Usage:
    stockguard serve --host 0.0.0.0 --port 8080
    stockguard bulk-scan /tmp/shopify-bulk.ndjson --raise --exclude 12345
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from stockguard.config import get_settings
from stockguard.inventory.bulk_file import BulkScanOptions, scan_bulk_file


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP service under uvicorn."""
    import uvicorn

    from stockguard.serve import configure_logging

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "stockguard.serve:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )


def cmd_bulk_scan(args: argparse.Namespace) -> None:
    """Dry-run a downloaded bulk export without calling Shopify."""
    path = Path(args.file)
    if not path.exists():
        print(f"ERROR: bulk file not found: {path}", file=sys.stderr)
        sys.exit(1)

    report = scan_bulk_file(
        path,
        BulkScanOptions(
            raise_to_committed=args.raise_to_committed,
            exclude_location=args.exclude,
            filter_sku=args.sku,
            max_corrections=args.max,
        ),
    )
    print(f"Bulk file:     {path}")
    print(f"  Candidates:  {len(report.candidates)}")
    print(f"  Variants:    {report.variants_seen}")
    print(f"  Skipped:     {report.skipped_lines} lines, {report.orphan_levels} orphan levels")
    if report.candidates:
        print(json.dumps([c.to_dict() for c in report.candidates[: args.sample]], indent=2))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="stockguard",
        description="Detect and correct negative Shopify inventory",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # serve
    p_serve = sub.add_parser("serve", help="Run the HTTP service")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8080")))
    p_serve.set_defaults(func=cmd_serve)

    # bulk-scan
    p_scan = sub.add_parser("bulk-scan", help="Dry-run a downloaded bulk export file")
    p_scan.add_argument("file", help="Path to the JSONL export")
    p_scan.add_argument("--raise", dest="raise_to_committed", action="store_true",
                        help="Raise on-hand to committed instead of zeroing")
    p_scan.add_argument("--exclude", help="Skip locations whose GID contains this")
    p_scan.add_argument("--sku", help="Only SKUs containing this (case-insensitive)")
    p_scan.add_argument("--max", type=int, help="Stop after this many candidates")
    p_scan.add_argument("--sample", type=int, default=10, help="Candidates to print")
    p_scan.set_defaults(func=cmd_bulk_scan)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
