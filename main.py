import argparse
import shutil
import sys
from typing import List, Optional, Tuple

from loguru import logger

from portal.catalog import load_catalog
from portal.config import (
    BASE_TEMPLATE,
    get_catalog_path,
    get_database_url,
    get_generated_dir,
    get_host,
    get_mcp_cli,
    get_port,
    get_templates_dir,
)
from portal.templating import find_unresolved_tokens


def run_doctor() -> Tuple[List[str], List[str]]:
    """Check catalog, template and external tools; print and return (ok, issues)."""
    ok: List[str] = []
    issues: List[str] = []
    catalog_path = get_catalog_path()
    try:
        catalog = load_catalog(catalog_path)
        ok.append(f"catalog loaded: {catalog_path} ({len(catalog)} portals)")
        for category in catalog.categories():
            ok.append(f"  {category}: {len(catalog.portals(category))}")
    except (OSError, ValueError) as e:
        issues.append(f"catalog not usable ({catalog_path}): {e}")
    template = get_templates_dir() / BASE_TEMPLATE
    if template.is_dir():
        ok.append(f"base template exists: {template}")
    else:
        issues.append(f"base template missing: {template}")
    mcp = get_mcp_cli()
    if shutil.which(mcp):
        ok.append(f"{mcp} found on PATH")
    else:
        issues.append(f"{mcp} not found on PATH (mcp-integration commands will fail)")
    generated = get_generated_dir()
    if generated.is_dir():
        leftovers = find_unresolved_tokens(generated)
        if leftovers:
            issues.append(f"unfilled placeholders in {len(leftovers)} generated file(s), first: {leftovers[0]}")
        else:
            ok.append(f"generated portals fully substituted: {generated}")
    if get_database_url():
        ok.append("DATABASE_URL set")
    else:
        issues.append("DATABASE_URL not set (fractals and collections are not persisted)")
    print("Doctor report:")
    for s in ok:
        print("  OK:", s)
    for s in issues:
        print("  Issue:", s)
    return ok, issues


def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    import uvicorn

    from portal.app import app

    host = host or get_host()
    port = port or get_port()
    logger.info("Portal server on http://{}:{}", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Helix portal orchestrator")
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=["serve", "doctor"],
        help="serve (default): run the portal web app; doctor: check catalog, template and tools",
    )
    parser.add_argument("--host", type=str, default=None, help="Bind host (default: PORTAL_HOST or config)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: PORTAL_PORT or config)")
    args = parser.parse_args()
    try:
        if args.command == "doctor":
            _, problems = run_doctor()
            sys.exit(1 if problems else 0)
        serve(args.host, args.port)
    except Exception as e:
        logger.exception(e)
        sys.exit(1)
