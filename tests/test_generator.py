"""Tests for CLI-path generation: single portal, category batch, full run with report."""
import json

import pytest

from portal.errors import CategoryNotFoundError, PortalNotFoundError
from portal.generator import (
    PORTAL_CONFIG_FILE,
    REPORT_FILE,
    generate_all,
    generate_all_portals,
    generate_portal,
)
from portal.templating import find_unresolved_tokens


def test_generate_portal_writes_tree_and_config(catalog, base_template, tmp_path, png_bytes):
    out = tmp_path / "generated"
    path = generate_portal("helix-hub", "core", catalog=catalog, output_root=out, template_dir=base_template)

    assert path == out / "helix-hub"
    package = json.loads((path / "package.json").read_text(encoding="utf-8"))
    assert package["name"] == "helix-hub"
    assert package["description"] == "Central consciousness coordination portal"
    assert (path / "logo.png").read_bytes() == png_bytes
    assert find_unresolved_tokens(path) == []

    config = json.loads((path / PORTAL_CONFIG_FILE).read_text(encoding="utf-8"))
    assert config["id"] == "helix-hub"
    assert config["type"] == "core"
    assert config["backend"] == {"production": "https://api.example.test", "websocket": "wss://api.example.test/ws"}
    assert config["generatedAt"].endswith("Z")


def test_generate_portal_not_found_writes_nothing(catalog, base_template, tmp_path):
    out = tmp_path / "generated"
    with pytest.raises(PortalNotFoundError):
        generate_portal("super-ninja", "core", catalog=catalog, output_root=out, template_dir=base_template)
    assert not out.exists()


def test_generate_portal_unknown_category(catalog, base_template, tmp_path):
    with pytest.raises(CategoryNotFoundError):
        generate_portal("helix-hub", "bogus", catalog=catalog, output_root=tmp_path, template_dir=base_template)


def test_generate_portal_is_idempotent(catalog, base_template, tmp_path):
    out = tmp_path / "generated"
    path = generate_portal("master-hub", "core", catalog=catalog, output_root=out, template_dir=base_template)
    (path / "leftover.txt").write_text("stale", encoding="utf-8")
    first = (path / "src" / "config.ts").read_text(encoding="utf-8")

    generate_portal("master-hub", "core", catalog=catalog, output_root=out, template_dir=base_template)
    assert not (path / "leftover.txt").exists()
    assert (path / "src" / "config.ts").read_text(encoding="utf-8") == first


def test_generate_portal_missing_template(catalog, tmp_path):
    with pytest.raises(FileNotFoundError):
        generate_portal("helix-hub", "core", catalog=catalog, output_root=tmp_path / "out", template_dir=tmp_path / "none")


def test_generate_all_portals_isolates_failures(catalog, base_template, tmp_path):
    out = tmp_path / "generated"
    out.mkdir()
    # a plain file where the output directory should go makes that one portal fail
    (out / "helix-hub").write_text("not a directory", encoding="utf-8")

    results = generate_all_portals("core", catalog=catalog, output_root=out, template_dir=base_template)

    assert [r.id for r in results] == ["helix-hub", "master-hub"]
    assert results[0].status == "failed"
    assert results[0].error
    assert results[1].status == "success"
    assert results[1].path == str(out / "master-hub")


def test_generate_all_portals_unknown_category(catalog, base_template, tmp_path):
    with pytest.raises(CategoryNotFoundError):
        generate_all_portals("bogus", catalog=catalog, output_root=tmp_path, template_dir=base_template)


def test_generate_all_writes_report(catalog, base_template, tmp_path):
    out = tmp_path / "generated"
    report = generate_all(catalog=catalog, output_root=out, template_dir=base_template)

    assert report.totalPortals == 3
    assert [r.id for r in report.results] == ["helix-hub", "master-hub", "super-ninja"]
    saved = json.loads((out / REPORT_FILE).read_text(encoding="utf-8"))
    assert saved["totalPortals"] == 3
    assert {r["status"] for r in saved["results"]} == {"success"}
    assert json.loads((out / "super-ninja" / PORTAL_CONFIG_FILE).read_text(encoding="utf-8"))["type"] == "agents"
