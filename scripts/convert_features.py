import argparse
import sys
from collections import Counter
from pathlib import Path
from typing import Iterable, List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from sparsefm.batch import copy_features
from sparsefm.codec import required_bytes
from sparsefm.config import Config, load_config
from sparsefm.data_validation import validate_rows
from sparsefm.io_utils import (
    ROW_HEADER_BYTES,
    iter_feature_rows,
    load_binary_rows,
    save_binary_rows,
    save_text_rows,
)
from sparsefm.types import Feature


def resolve_config(args: argparse.Namespace) -> Config:
    """Loads the config file (if present) and applies command-line overrides."""
    config_path = Path(args.config)
    if config_path.exists():
        cfg = load_config(str(config_path))
    else:
        print(f"Warning: Config file {config_path} not found. Using defaults.")
        cfg = Config()

    if args.mode is not None:
        cfg.mode = args.mode
    if args.on_error is not None:
        cfg.on_error = args.on_error
    if args.no_progress:
        cfg.show_progress = False
    return cfg


def encode(args: argparse.Namespace, cfg: Config) -> None:
    """Parses a text rows file and writes it as a binary rows file."""
    rows = iter_feature_rows(args.input, cfg)
    written = save_binary_rows(args.output, rows, show_progress=False)
    print(f"Successfully wrote {written} bytes of {cfg.mode} features to {args.output}")


def decode(args: argparse.Namespace, cfg: Config) -> None:
    """Reads a binary rows file and writes it back as text rows."""
    separator = cfg.token_separator or " "
    rows = load_binary_rows(args.input, cfg.mode)
    count = save_text_rows(args.output, rows, separator=separator)
    print(f"Successfully wrote {count} rows to {args.output}")


def collect_stats(rows: Iterable[List[Feature]], reuse_probes: bool) -> dict:
    """Summarizes rows: counts, encoded size, and validation issues."""
    retained = []
    total_bytes = 0
    for features in rows:
        total_bytes += ROW_HEADER_BYTES + required_bytes(features)
        retained.append(copy_features(features) if reuse_probes else features)

    report = validate_rows(retained)
    return {
        "rows": len(retained),
        "features": sum(len(r) for r in retained),
        "empty_rows": sum(1 for r in retained if not r),
        "binary_bytes": total_bytes,
        "issue_count": report["issue_count"],
        "issue_types": dict(Counter(issue["type"] for issue in report["issues"])),
    }


def stats(args: argparse.Namespace, cfg: Config) -> None:
    """Prints a summary of a text rows file."""
    summary = collect_stats(iter_feature_rows(args.input, cfg), cfg.reuse_probes)
    print(f"\n--- Summary of {args.input} ({cfg.mode}) ---")
    for key, value in summary.items():
        print(f"{key}: {value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert rows of sparse feature tokens between text and the binary row format.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--config", default="config.yaml", help="Path to the configuration YAML file.")
    parser.add_argument("--mode", choices=["indexed", "named"], default=None, help="Feature mode; overrides the config file.")
    parser.add_argument("--on-error", choices=["fail", "skip"], default=None, help="What to do with malformed rows; overrides the config file.")
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bars.")

    sub = parser.add_subparsers(dest="command", required=True)

    p_encode = sub.add_parser("encode", help="Text rows -> binary rows.")
    p_encode.add_argument("--input", required=True, help="Path to the text rows file.")
    p_encode.add_argument("--output", required=True, help="Path for the binary rows file.")
    p_encode.set_defaults(func=encode)

    p_decode = sub.add_parser("decode", help="Binary rows -> text rows.")
    p_decode.add_argument("--input", required=True, help="Path to the binary rows file.")
    p_decode.add_argument("--output", required=True, help="Path for the text rows file.")
    p_decode.set_defaults(func=decode)

    p_stats = sub.add_parser("stats", help="Summarize a text rows file.")
    p_stats.add_argument("--input", required=True, help="Path to the text rows file.")
    p_stats.set_defaults(func=stats)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    Command-line entry point for converting feature rows.

    Sub-commands:
    1.  ``encode``: parse a text rows file and write the binary row format.
    2.  ``decode``: read a binary rows file and write text tokens.
    3.  ``stats``: print row/feature counts, encoded size and validation issues.

    The feature mode is taken from ``--mode`` or the config file; it must
    match between ``encode`` and ``decode`` since the binary file does not
    record it.
    """
    args = build_parser().parse_args(argv)
    try:
        cfg = resolve_config(args)
        args.func(args, cfg)
    except (FileNotFoundError, ValueError, TypeError) as e:
        print(f"\n[ERROR] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
