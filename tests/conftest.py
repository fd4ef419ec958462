"""Shared fixtures: a small catalog and a throwaway base-portal template under tmp_path."""
import json

import pytest

from portal.catalog import PortalCatalog

BACKEND = {
    "production": "https://api.example.test",
    "websocket": "wss://api.example.test/ws",
}

PNG_BYTES = b"\x89PNG\r\n\x1a\n{{PORTAL_ID}}\x00\xff"


@pytest.fixture
def catalog_data():
    return {
        "backend": dict(BACKEND),
        "portals": {
            "core": [
                {
                    "id": "helix-hub",
                    "name": "Helix Hub",
                    "domain": "helix-hub.manus.space",
                    "icon": "🌀",
                    "description": "Central consciousness coordination portal",
                    "tier": 1,
                    "template": "web-db-user",
                    "features": ["dashboard", "real-time-sync"],
                    "integrations": ["helix-unified", "notion"],
                },
                {
                    "id": "master-hub",
                    "name": "Master Hub",
                    "domain": "master-hub.manus.space",
                    "icon": "🏛",
                    "description": "Entry point",
                    "tier": 2,
                },
            ],
            "agents": [
                {
                    "id": "super-ninja",
                    "name": "Super Ninja",
                    "domain": "super-ninja.manus.space",
                    "icon": "🥷",
                    "description": "Stealth execution agent portal",
                    "tier": 1,
                },
            ],
        },
    }


@pytest.fixture
def catalog(catalog_data):
    return PortalCatalog.from_dict(catalog_data)


@pytest.fixture
def catalog_file(tmp_path, catalog_data):
    path = tmp_path / "portals.json"
    path.write_text(json.dumps(catalog_data), encoding="utf-8")
    return path


@pytest.fixture
def templates_dir(tmp_path):
    """templates/ holding only base-portal."""
    root = tmp_path / "templates"
    base = root / "base-portal"
    (base / "src").mkdir(parents=True)
    (base / "package.json").write_text(
        json.dumps({"name": "{{PORTAL_ID}}", "description": "{{PORTAL_DESCRIPTION}}", "version": "0.1.0"}),
        encoding="utf-8",
    )
    (base / "README.md").write_text("# {{PORTAL_NAME}}\n\n{{PORTAL_DESCRIPTION}}\n", encoding="utf-8")
    (base / "src" / "config.ts").write_text(
        'export const id = "{{PORTAL_ID}}";\n'
        'export const tier = {{PORTAL_TIER}};\n'
        'export const type = "{{PORTAL_TYPE}}";\n'
        'export const api = "{{BACKEND_URL}}";\n'
        'export const ws = "{{WEBSOCKET_URL}}";\n',
        encoding="utf-8",
    )
    (base / ".env").write_text("VITE_PORTAL_ID={{PORTAL_ID}}\n", encoding="utf-8")
    (base / "logo.png").write_bytes(PNG_BYTES)
    return root


@pytest.fixture
def base_template(templates_dir):
    return templates_dir / "base-portal"


@pytest.fixture
def png_bytes():
    return PNG_BYTES
