"""
Free-text SMS / voice command parsing for the Zapier webhook.

Supported:
  "status"                 -> status
  "deploy all portals"     -> deploy all
  "deploy core portals"    -> deploy core (likewise ai, consciousness, system)
  "deploy portal <word>"   -> deploy single
  "deploy"                 -> deploy all
Matching is substring-based and checked in that order, so "deploy ai" wins over a portal word.
"""
import re
from typing import Literal, NamedTuple, Optional

Action = Literal["deploy", "status", "unknown"]
Target = Literal["single", "all", "core", "ai", "consciousness", "system"]

# Command targets that map onto catalog categories ("ai" is the spoken name for agents).
TARGET_CATEGORIES = {
    "core": "core",
    "ai": "agents",
    "consciousness": "consciousness",
    "system": "system",
}

_PORTAL_RE = re.compile(r"portal\s+([\w-]+)")


class ParsedCommand(NamedTuple):
    action: Action
    target: Optional[Target] = None
    portal_id: Optional[str] = None


def parse_portal_command(command: str) -> ParsedCommand:
    normalized = (command or "").lower().strip()

    if "status" in normalized:
        return ParsedCommand("status")

    if "deploy" in normalized:
        if "all" in normalized:
            return ParsedCommand("deploy", "all")
        for target in ("core", "ai", "consciousness", "system"):
            if target in normalized:
                return ParsedCommand("deploy", target)
        m = _PORTAL_RE.search(normalized)
        if m:
            return ParsedCommand("deploy", "single", m.group(1))
        return ParsedCommand("deploy", "all")

    return ParsedCommand("unknown")
