"""
Orchestrator configuration: paths, secrets and tunables.
Resolution order: environment variable, then config/orchestrator.yml, then built-in default.
Getters are plain functions so tests can monkeypatch them per module.
"""
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger

# Project root: parent of portal package directory.
_PORTAL_DIR = Path(__file__).resolve().parent
ROOT_DIR = _PORTAL_DIR.parent

load_dotenv(ROOT_DIR / ".env")

CATEGORIES = ("core", "agents", "consciousness", "system")
BASE_TEMPLATE = "base-portal"

_settings_cache: Optional[Dict[str, Any]] = None


def get_config_dir() -> Path:
    """Path to config directory (e.g. config/)."""
    return ROOT_DIR / "config"


def load_settings() -> Dict[str, Any]:
    """Load config/orchestrator.yml once. Missing or invalid file yields {}."""
    global _settings_cache
    if _settings_cache is not None:
        return _settings_cache
    path = get_config_dir() / "orchestrator.yml"
    data: Dict[str, Any] = {}
    try:
        if path.is_file():
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
            if isinstance(loaded, dict):
                data = loaded
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read {}: {}", path, e)
    _settings_cache = data
    return data


def reset_settings() -> None:
    global _settings_cache
    _settings_cache = None


def _setting(env_name: str, key: str, default: Any = None) -> Any:
    v = os.environ.get(env_name, "").strip()
    if v:
        return v
    value = load_settings().get(key)
    return default if value is None else value


def _resolve_path(raw: Any) -> Path:
    p = Path(str(raw)).expanduser()
    return p if p.is_absolute() else ROOT_DIR / p


def get_catalog_path() -> Path:
    """JSON portal catalog (backend endpoints + portals grouped by category)."""
    return _resolve_path(_setting("PORTAL_CATALOG", "catalog", "config/portals.json"))


def get_templates_dir() -> Path:
    """Directory holding template trees (base-portal and named variants)."""
    return _resolve_path(_setting("PORTAL_TEMPLATES_DIR", "templates_dir", "templates"))


def get_generated_dir() -> Path:
    """Output root for the CLI generator: <generated>/<portal-id>."""
    return _resolve_path(_setting("PORTAL_GENERATED_DIR", "generated_dir", "generated"))


def get_portals_dir() -> Path:
    """Output root for server-side generation."""
    return _resolve_path(_setting("PORTAL_PORTALS_DIR", "portals_dir", "portals"))


def get_install_command() -> str:
    return str(_setting("PORTAL_INSTALL_COMMAND", "install_command", "pnpm install"))


def get_install_timeout() -> float:
    """Seconds before a dependency install is killed. Default 120."""
    try:
        return float(_setting("PORTAL_INSTALL_TIMEOUT", "install_timeout", 120))
    except (TypeError, ValueError):
        return 120.0


def get_max_concurrent() -> int:
    try:
        return max(1, int(_setting("PORTAL_MAX_CONCURRENT", "max_concurrent", 3)))
    except (TypeError, ValueError):
        return 3


def get_deploy_domain() -> str:
    return str(_setting("PORTAL_DEPLOY_DOMAIN", "deploy_domain", "manus.space"))


def get_mcp_cli() -> str:
    return str(_setting("MCP_CLI", "mcp_cli", "manus-mcp-cli"))


def get_admin_email() -> str:
    """Only this caller may trigger generation through the remote surface."""
    return str(_setting("PORTAL_ADMIN_EMAIL", "admin_email", "admin@example.com")).strip().lower()


def get_zapier_secret() -> str:
    return str(_setting("ZAPIER_WEBHOOK_SECRET", "zapier_webhook_secret", "helix-unified-secret-2025"))


def get_admin_phone() -> str:
    return str(_setting("ADMIN_PHONE_NUMBER", "admin_phone_number", "+1"))


def get_database_url() -> Optional[str]:
    """DATABASE_URL; None disables persistence."""
    v = _setting("DATABASE_URL", "database_url", None)
    if not v:
        return None
    return str(v).strip() or None


def get_helix_api_url() -> str:
    return str(_setting("HELIX_API_URL", "helix_api_url", "https://helix-unified-production.up.railway.app"))


def get_owner_notify_url() -> Optional[str]:
    v = _setting("OWNER_NOTIFY_URL", "owner_notify_url", None)
    if not v:
        return None
    return str(v).strip() or None


def get_host() -> str:
    return str(_setting("PORTAL_HOST", "host", "127.0.0.1"))


def get_port() -> int:
    """Server port. Default 18472."""
    try:
        return int(_setting("PORTAL_PORT", "port", 18472))
    except (TypeError, ValueError):
        return 18472
