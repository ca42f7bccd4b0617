"""
Run a license join from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace

from licensejoin.config import (
    LicenseJoinSettings,
    get_license_join_settings,
    normalize_mode,
    resolve_path,
)
from licensejoin.logging_utils import configure_logging, log_event
from licensejoin.pipeline import build_pipeline

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Join licensee listing, quick-search and profile records into one CSV.",
    )
    parser.add_argument("--mode", choices=["live", "replay"], default=None, help="Fetch live or replay the archive.")
    parser.add_argument("--delay", type=float, default=None, help="Minimum seconds between live dispatches.")
    parser.add_argument("--archive-dir", default=None, help="Directory holding raw archived responses.")
    parser.add_argument("--zones", default=None, help="Optional zip-code zone CSV.")
    parser.add_argument("--output", default=None, help="Destination CSV path.")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file.")
    parser.add_argument("--timeout", type=float, default=None, help="Give up waiting after this many seconds.")
    return parser


def apply_overrides(settings: LicenseJoinSettings, args: argparse.Namespace) -> LicenseJoinSettings:
    """
    Layer explicit CLI flags over environment-derived settings.
    """

    overrides: dict[str, object] = {}
    if args.mode is not None:
        overrides["mode"] = normalize_mode(args.mode)
    if args.delay is not None:
        overrides["dispatch_delay_seconds"] = max(0.0, args.delay)
    if args.archive_dir is not None:
        overrides["archive_dir"] = resolve_path(args.archive_dir)
    if args.zones is not None:
        overrides["zones_path"] = resolve_path(args.zones)
    if args.output is not None:
        overrides["output_path"] = resolve_path(args.output)
    if args.log_file is not None:
        overrides["log_path"] = resolve_path(args.log_file)
    return replace(settings, **overrides)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = apply_overrides(get_license_join_settings(), args)
    configure_logging(level=settings.log_level, log_path=settings.log_path)

    try:
        summary = build_pipeline(settings).run(timeout=args.timeout)
    except TimeoutError as exc:
        log_event(logger, logging.ERROR, "license_join_timed_out", timeout_seconds=args.timeout, error=str(exc))
        payload = {
            "mode": settings.mode,
            "output_path": settings.output_path,
            "status": "timed_out",
            "timeout_seconds": args.timeout,
        }
        print(json.dumps(payload, indent=2))
        return 1

    payload = {
        "mode": settings.mode,
        "output_path": settings.output_path,
        "status": "completed",
        "elapsed_seconds": summary.elapsed_seconds,
        "records_by_source": summary.records_by_source,
        "merged": summary.merged,
        "unmatched": summary.unmatched,
        "errors": summary.errors,
    }
    print(json.dumps(payload, indent=2))
    return 1 if summary.had_errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
