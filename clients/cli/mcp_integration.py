#!/usr/bin/env python3
"""
Helix orchestration: drive Notion, Zapier, Vercel and Sentry through the MCP command-line tool.

Usage:
  mcp-integration init                       # Notion database, sync portals, Zapier webhooks
  mcp-integration deploy <portal-id> [path]  # path defaults to ./generated/<portal-id>
  mcp-integration monitor <portal-id>
  mcp-integration sync-notion
  mcp-integration setup-webhooks

Set MCP_CLI to use a different executable (default: manus-mcp-cli).
"""

import argparse
import json
import sys
from typing import Any, List, Optional

from integrations.services import HelixOrchestrator

COMMANDS = ("init", "deploy", "monitor", "sync-notion", "setup-webhooks")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-integration",
        description="Helix Orchestration System",
        allow_abbrev=False,
    )
    parser.add_argument("command", nargs="?", help=", ".join(COMMANDS))
    parser.add_argument("portal_id", nargs="?", help="Portal id (deploy, monitor)")
    parser.add_argument("path", nargs="?", help="Project path for deploy (default: ./generated/<portal-id>)")
    return parser


def _dump(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_init(orchestrator: HelixOrchestrator, args) -> int:
    summary = orchestrator.initialize()
    ok = sum(1 for r in summary["synced"] if r["success"])
    print(f"Synced {ok}/{len(summary['synced'])} portals to Notion")
    print(f"Configured {len(summary['webhooks'])} Zapier webhooks")
    return 0


def cmd_deploy(orchestrator: HelixOrchestrator, args) -> int:
    path = args.path or f"./generated/{args.portal_id}"
    result = orchestrator.deploy_portal(args.portal_id, path)
    if result.success:
        print(f"Portal {args.portal_id} deployed")
    else:
        print(f"Deployment failed: {result.to_dict().get('error')}", file=sys.stderr)
    _dump(result.to_dict())
    return 0


def cmd_monitor(orchestrator: HelixOrchestrator, args) -> int:
    report = orchestrator.monitor_portal_health(args.portal_id)
    print(f"{args.portal_id}: {report['healthStatus']} ({report['errors']} errors)")
    return 0


def cmd_sync_notion(orchestrator: HelixOrchestrator, args) -> int:
    results = orchestrator.notion.sync_all_portals()
    ok = sum(1 for r in results if r["success"])
    print(f"Synced {ok}/{len(results)} portals to Notion")
    return 0


def cmd_setup_webhooks(orchestrator: HelixOrchestrator, args) -> int:
    results = orchestrator.zapier.setup_all_webhooks()
    print(f"Configured {len(results)} Zapier webhooks")
    return 0


_HANDLERS = {
    "init": cmd_init,
    "deploy": cmd_deploy,
    "monitor": cmd_monitor,
    "sync-notion": cmd_sync_notion,
    "setup-webhooks": cmd_setup_webhooks,
}


def main(argv: Optional[List[str]] = None, orchestrator: Optional[HelixOrchestrator] = None) -> int:
    parser = _parser()
    args = parser.parse_args(argv)
    handler = _HANDLERS.get(args.command or "")
    if handler is None or (args.command in ("deploy", "monitor") and not args.portal_id):
        parser.print_help()
        return 0
    return handler(orchestrator or HelixOrchestrator(), args)


if __name__ == "__main__":
    sys.exit(main())
