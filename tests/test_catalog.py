"""Tests for the portal catalog: loading, lookup by id/category, validation."""
import json

import pytest

from portal.catalog import PortalCatalog, load_catalog
from portal.config import get_catalog_path
from portal.errors import CategoryNotFoundError, PortalNotFoundError


def test_load_catalog_from_file(catalog_file):
    catalog = load_catalog(catalog_file)
    assert len(catalog) == 3
    assert catalog.categories() == ["core", "agents"]
    assert catalog.backend.production == "https://api.example.test"


def test_find_returns_portal_with_category_type(catalog):
    portal = catalog.find("master-hub", "core")
    assert portal.name == "Master Hub"
    assert portal.type == "core"
    assert portal.tier == 2
    # defaults for fields the catalog entry leaves out
    assert portal.template == "base-portal"
    assert portal.features == []


def test_find_without_category_searches_everything(catalog):
    assert catalog.find("super-ninja").type == "agents"


def test_find_wrong_category_raises_not_found(catalog):
    with pytest.raises(PortalNotFoundError) as exc:
        catalog.find("super-ninja", "core")
    assert str(exc.value) == 'Portal "super-ninja" not found in category "core"'


def test_unknown_category_raises(catalog):
    with pytest.raises(CategoryNotFoundError) as exc:
        catalog.portals("bogus")
    assert str(exc.value) == 'Category "bogus" not found'


def test_get_portal_config_never_raises(catalog):
    assert catalog.get_portal_config("helix-hub").features == ["dashboard", "real-time-sync"]
    assert catalog.get_portal_config("nope") is None


def test_get_portals_by_type_unknown_is_empty(catalog):
    assert [p.id for p in catalog.get_portals_by_type("core")] == ["helix-hub", "master-hub"]
    assert catalog.get_portals_by_type("bogus") == []


def test_iteration_is_declared_order(catalog):
    assert [p.id for p in catalog] == ["helix-hub", "master-hub", "super-ninja"]
    assert "helix-hub" in catalog
    assert "nope" not in catalog


def test_duplicate_ids_rejected(catalog_data):
    catalog_data["portals"]["agents"].append(dict(catalog_data["portals"]["core"][0]))
    with pytest.raises(ValueError, match="Duplicate portal id"):
        PortalCatalog.from_dict(catalog_data)


def test_unknown_category_in_document_rejected(catalog_data):
    catalog_data["portals"]["misc"] = []
    with pytest.raises(ValueError, match="Unknown portal category"):
        PortalCatalog.from_dict(catalog_data)


def test_missing_backend_rejected(catalog_data):
    del catalog_data["backend"]
    with pytest.raises(ValueError, match="backend"):
        PortalCatalog.from_dict(catalog_data)


def test_invalid_json_raises_value_error(tmp_path):
    path = tmp_path / "portals.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="invalid JSON"):
        load_catalog(path)


def test_missing_file_raises_os_error(tmp_path):
    with pytest.raises(OSError):
        load_catalog(tmp_path / "missing.json")


def test_shipped_catalog_has_every_category():
    catalog = load_catalog(get_catalog_path())
    counts = {c: len(catalog.portals(c)) for c in catalog.categories()}
    assert counts == {"core": 12, "agents": 17, "consciousness": 12, "system": 10}
    assert catalog.find("samsara-showcase", "core").template == "web-db-user"


def test_catalog_entries_are_frozen(catalog):
    portal = catalog.find("helix-hub")
    with pytest.raises(Exception):
        portal.name = "changed"
    assert json.loads(portal.model_dump_json())["name"] == "Helix Hub"
