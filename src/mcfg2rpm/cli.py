"""CLI entrypoint: convert a MachineConfig YAML file into a package."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .errors import Mcfg2RpmError
from .logging_utils import configure_logging
from .packagers import registered_formats
from .pipeline import run
from .policy import PackagePolicy, load_policy

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mcfg2rpm", description="MachineConfig to package converter")
    parser.add_argument("input", nargs="?", help="Path to MachineConfig YAML")
    parser.add_argument("--format", default="rpm", help=f"Package format ({', '.join(registered_formats())})")
    parser.add_argument("--output-dir", default=None, help="Directory for the package (defaults to cwd)")
    parser.add_argument("--policy", default=None, help="Path to package policy YAML")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(level=getattr(logging, str(args.log_level).upper(), logging.INFO), log_path=args.log_file)

    if not args.input:
        raise SystemExit("no input file provided")

    try:
        policy = load_policy(Path(args.policy)) if args.policy else PackagePolicy()
        target = run(
            Path(args.input),
            policy=policy,
            format_name=args.format,
            output_dir=Path(args.output_dir) if args.output_dir else None,
        )
    except Mcfg2RpmError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc
    print(target)


if __name__ == "__main__":
    main()
