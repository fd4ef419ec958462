# Integrations: MCP command runner, per-service wrappers (Notion, Zapier, Vercel, Sentry)
# and the Helix backend HTTP client.

from integrations.mcp import CommandError, CommandOk, CommandResult, ErrorKind, McpRunner
from integrations.services import (
    HelixOrchestrator,
    NotionIntegration,
    SentryIntegration,
    VercelIntegration,
    ZapierIntegration,
)

__all__ = [
    "CommandError",
    "CommandOk",
    "CommandResult",
    "ErrorKind",
    "McpRunner",
    "HelixOrchestrator",
    "NotionIntegration",
    "SentryIntegration",
    "VercelIntegration",
    "ZapierIntegration",
]
