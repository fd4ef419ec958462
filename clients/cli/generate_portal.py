#!/usr/bin/env python3
"""
Helix portal generator: copy the base template into generated/<portal-id> and fill it in.

Usage:
  generate-portal <portal-id> [category]    # category defaults to core
  generate-portal --all-<category>          # every portal of one category
  generate-portal --all                     # every category, plus generation-report.json

Examples:
  generate-portal master-hub core
  generate-portal super-ninja agents
  generate-portal --all-core
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from portal.config import CATEGORIES
from portal.errors import PortalError
from portal.generator import REPORT_FILE, generate_all, generate_all_portals, generate_portal

ALL_PREFIX = "--all-"


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="generate-portal",
        description="Helix Portal Generator",
        epilog=f"Categories: {', '.join(CATEGORIES)}",
        allow_abbrev=False,
    )
    parser.add_argument("--all", action="store_true", help="Generate every portal in every category")
    parser.add_argument("portal_id", nargs="?", help="Portal id, e.g. master-hub")
    parser.add_argument("category", nargs="?", default="core", help="Catalog category (default: core)")
    return parser


def _print_batch(category: str, results) -> None:
    ok = sum(1 for r in results if r.status == "success")
    print(f"\n{category}: total {len(results)}, success {ok}, failed {len(results) - ok}")
    for r in results:
        if r.status == "failed":
            print(f"  failed: {r.id}: {r.error}", file=sys.stderr)


def cmd_category(category: str) -> int:
    try:
        results = generate_all_portals(category)
    except PortalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _print_batch(category, results)
    return 0


def cmd_all() -> int:
    try:
        report = generate_all()
    except PortalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    failed = [r for r in report.results if r.status == "failed"]
    print(f"\nComplete! Generated {report.totalPortals - len(failed)}/{report.totalPortals} portals")
    for r in failed:
        print(f"  failed: {r.id}: {r.error}", file=sys.stderr)
    print(f"Report saved to: {REPORT_FILE}")
    return 0


def cmd_single(args) -> int:
    try:
        path = generate_portal(args.portal_id, args.category)
    except PortalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Portal generated: {path}")
    print("Next steps:")
    print(f"  cd {path}")
    print("  pnpm install")
    print("  pnpm dev")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _parser()
    if not argv:
        parser.print_help()
        return 0

    category = None
    if argv[0].startswith(ALL_PREFIX):
        category = argv.pop(0)[len(ALL_PREFIX):]
    args = parser.parse_args(argv)

    try:
        if category is not None:
            return cmd_category(category)
        if args.all:
            return cmd_all()
        if not args.portal_id:
            parser.print_help()
            return 0
        return cmd_single(args)
    except OSError as e:
        logger.exception(e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
