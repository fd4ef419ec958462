"""
Portal generation from the shared base template (CLI path).

generate_portal: resolve -> clean output dir -> copy template -> substitute -> write portal.config.json.
generate_all_portals: one category, strictly sequential, per-portal failures recorded not raised.
generate_all: every category, report written to <generated>/generation-report.json.

No rollback: a failure after the copy leaves a partial tree; re-running starts from scratch.
Not safe for two concurrent runs against the same portal id (see portal.multi for the locked variant).
"""
import json
from pathlib import Path
from typing import List, Optional

from loguru import logger

from portal.catalog import PortalCatalog, get_catalog
from portal.config import BASE_TEMPLATE, get_generated_dir, get_templates_dir
from portal.models import BackendEndpoints, BatchResult, GenerationReport, PortalConfig, utc_now_iso
from portal.templating import build_token_map, copy_directory, replace_in_directory

PORTAL_CONFIG_FILE = "portal.config.json"
REPORT_FILE = "generation-report.json"


def write_portal_config(output_dir: Path, portal: PortalConfig, backend: BackendEndpoints) -> Path:
    """Write portal fields + backend + generatedAt as portal.config.json."""
    data = portal.descriptor_fields()
    data["backend"] = backend.model_dump()
    data["generatedAt"] = utc_now_iso()
    path = Path(output_dir) / PORTAL_CONFIG_FILE
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def generate_portal(
    portal_id: str,
    category: str = "core",
    catalog: Optional[PortalCatalog] = None,
    output_root: Optional[Path] = None,
    template_dir: Optional[Path] = None,
) -> Path:
    """Generate one portal; returns the output directory.
    Raises PortalNotFoundError / CategoryNotFoundError before any filesystem write."""
    catalog = catalog or get_catalog()
    logger.info("Generating portal: {} ({})", portal_id, category)
    portal = catalog.find(portal_id, category)
    logger.debug("Found configuration for {}", portal.name)

    output_dir = Path(output_root or get_generated_dir()) / portal.id
    template_dir = Path(template_dir or (get_templates_dir() / BASE_TEMPLATE))

    if output_dir.exists():
        logger.info("Portal directory {} already exists, cleaning", output_dir)
    copy_directory(template_dir, output_dir)

    tokens = build_token_map(portal, catalog.backend)
    rewritten = replace_in_directory(output_dir, tokens)
    logger.debug("Replaced template variables in {} files", rewritten)

    write_portal_config(output_dir, portal, catalog.backend)
    logger.info("Portal generated at {}", output_dir)
    return output_dir


def generate_all_portals(
    category: str,
    catalog: Optional[PortalCatalog] = None,
    output_root: Optional[Path] = None,
    template_dir: Optional[Path] = None,
) -> List[BatchResult]:
    """Generate every portal of a category in declared order. Unknown category raises."""
    catalog = catalog or get_catalog()
    portals = catalog.portals(category)
    logger.info("Generating all {} portals ({})", category, len(portals))
    results: List[BatchResult] = []
    for portal in portals:
        try:
            path = generate_portal(portal.id, category, catalog=catalog, output_root=output_root, template_dir=template_dir)
            results.append(BatchResult(id=portal.id, status="success", path=str(path)))
        except Exception as e:
            logger.error("Failed to generate {}: {}", portal.id, e)
            results.append(BatchResult(id=portal.id, status="failed", error=str(e)))
    ok = sum(1 for r in results if r.status == "success")
    logger.info("{}: total {}, success {}, failed {}", category, len(results), ok, len(results) - ok)
    return results


def save_report(report: GenerationReport, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    return path


def generate_all(
    catalog: Optional[PortalCatalog] = None,
    output_root: Optional[Path] = None,
    template_dir: Optional[Path] = None,
) -> GenerationReport:
    """Generate every category and overwrite the generation report."""
    catalog = catalog or get_catalog()
    output_root = Path(output_root or get_generated_dir())
    results: List[BatchResult] = []
    for category in catalog.categories():
        results.extend(generate_all_portals(category, catalog=catalog, output_root=output_root, template_dir=template_dir))
    report = GenerationReport(totalPortals=len(results), results=results)
    path = save_report(report, output_root / REPORT_FILE)
    logger.info("Generated {} portals; report saved to {}", len(results), path)
    return report
