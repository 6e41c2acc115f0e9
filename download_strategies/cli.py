# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Command-line harness for exercising download strategies against real URLs."""

import argparse
import logging
import os
import sys
import tempfile

from . import __version__
from .credentials import CREDENTIAL_VARIABLES
from .dispatcher import STRATEGIES
from .environment import Environment
from .exceptions import DownloadStrategyError
from .orchestrator import Fetcher

logger = logging.getLogger(__name__)


def mask(value: str) -> str:
    """Show the first four characters of a secret and star the rest."""
    return value[:4] + "*" * max(len(value) - 4, 0)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="download_strategies", description="Test authenticated download strategies.")
    p.add_argument("-v", "--verbose", action="store_true", help="verbose output")
    p.add_argument("--version", action="version", version=f"download-strategies {__version__}")
    sub = p.add_subparsers(dest="command")

    sub.add_parser("list", help="list available strategies and the variables they read")
    sub.add_parser("check-env", help="show which credential variables are set")

    f = sub.add_parser("fetch", help="download a URL through its strategy")
    f.add_argument("url", help="artifact URL (https:// or s3://)")
    f.add_argument("--dest", help="destination file (default: a temporary file that is removed)")
    f.add_argument("--strategy", choices=sorted(STRATEGIES), help="force a strategy instead of dispatching on the URL")
    f.add_argument("--auth-type", help="auth kind for the authenticated strategy (bearer, basic, api_key, header, none)")
    f.add_argument("--header", action="append", default=[], metavar="NAME:VALUE", help="extra header, repeatable")
    f.add_argument("--region", help="AWS region for s3:// URLs")
    f.add_argument("--timeout", type=float, help="timeout in seconds")
    f.add_argument("--dry-run", action="store_true", help="resolve and build the request without downloading")
    return p


def list_strategies(out=None) -> None:
    out = out or sys.stdout
    print("\nAvailable Download Strategies:", file=out)
    print("-" * 40, file=out)
    for name, cls in STRATEGIES.items():
        print(f"  {name.ljust(20)} => {cls.__name__}", file=out)
    print("\nEnvironment Variables:", file=out)
    print("-" * 40, file=out)
    for provider, names in CREDENTIAL_VARIABLES.items():
        print(f"  {provider}:", file=out)
        for name in names:
            print(f"    - {name}", file=out)


def check_environment(environment: Environment, out=None) -> None:
    out = out or sys.stdout
    print("\nEnvironment Variable Status:", file=out)
    print("-" * 40, file=out)
    for provider, names in CREDENTIAL_VARIABLES.items():
        print(f"\n{provider}:", file=out)
        for name in names:
            value = environment.get(name)
            if value:
                print(f"  [set]     {name} = {mask(value)}", file=out)
            else:
                print(f"  [not set] {name} = (not set)", file=out)


def run_fetch(args: argparse.Namespace, fetcher: Fetcher, out=None) -> bool:
    out = out or sys.stdout
    options = {}
    if args.strategy:
        options["strategy"] = args.strategy
    if args.auth_type:
        options["auth_type"] = args.auth_type
    if args.header:
        options["headers"] = list(args.header)
    if args.region:
        options["region"] = args.region
    logger.debug(f"Fetching {args.url.split('?', 1)[0]} with options {sorted(options)}")

    try:
        if args.dry_run:
            descriptor = fetcher.prepare(args.url, args.dest, options=options, timeout=args.timeout)
            print(f"PASS      {descriptor.strategy} (dry run)", file=out)
            print(f"          URL: {descriptor.url.split('?', 1)[0]}", file=out)
            print(f"          Headers: {', '.join(name for name, _ in descriptor.headers) or '(none)'}", file=out)
            return True

        if args.dest:
            result = fetcher.fetch(args.url, args.dest, options=options, timeout=args.timeout)
            print(f"PASS      {result.strategy}", file=out)
            print(f"          Saved to: {result.path}", file=out)
            return True

        with tempfile.TemporaryDirectory(prefix="download-strategies-") as tmpdir:
            dest = os.path.join(tmpdir, "artifact")
            result = fetcher.fetch(args.url, dest, options=options, timeout=args.timeout)
            print(f"PASS      {result.strategy}", file=out)
            print(f"          Size: {os.path.getsize(result.path)} bytes", file=out)
        return True
    except DownloadStrategyError as e:
        print(f"FAIL      {e.strategy or '(no strategy)'}", file=out)
        for line in str(e).splitlines():
            print(f"          {line}", file=out)
        return False


def main(argv=None, fetcher: Fetcher | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = _build_parser()
    args = parser.parse_args(argv)

    environment = Environment()
    level = "DEBUG" if args.verbose else environment.get("DOWNLOAD_STRATEGIES_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "list":
        list_strategies()
        return 0
    if args.command == "check-env":
        check_environment(environment)
        return 0
    if args.command == "fetch":
        ok = run_fetch(args, fetcher or Fetcher(environment=environment))
        return 0 if ok else 1

    parser.print_help()
    return 1
