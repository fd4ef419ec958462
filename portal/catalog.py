"""
Canonical portal catalog: one JSON document, loaded once and shared by the CLI
generator and the server-side generator.

Document shape:
  { "backend": {"production": url, "websocket": url},
    "portals": {"core": [...], "agents": [...], "consciousness": [...], "system": [...]} }
"""
import json
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from loguru import logger
from pydantic import ValidationError

from portal.config import CATEGORIES, get_catalog_path
from portal.errors import CategoryNotFoundError, PortalNotFoundError
from portal.models import BackendEndpoints, PortalConfig


class PortalCatalog:
    """Immutable set of portal identities grouped by category."""

    def __init__(self, backend: BackendEndpoints, portals: Dict[str, Tuple[PortalConfig, ...]]):
        self.backend = backend
        self._portals = portals
        self._by_id: Dict[str, PortalConfig] = {}
        for category, items in portals.items():
            for p in items:
                if p.id in self._by_id:
                    raise ValueError(f"Duplicate portal id {p.id!r} (in {self._by_id[p.id].type} and {category})")
                self._by_id[p.id] = p

    @classmethod
    def from_dict(cls, data: dict) -> "PortalCatalog":
        if not isinstance(data, dict):
            raise ValueError("Portal catalog must be a JSON object")
        try:
            backend = BackendEndpoints(**(data.get("backend") or {}))
        except ValidationError as e:
            raise ValueError(f"Invalid backend section: {e}") from e
        raw_portals = data.get("portals") or {}
        if not isinstance(raw_portals, dict):
            raise ValueError("'portals' must map category -> list of portals")
        portals: Dict[str, Tuple[PortalConfig, ...]] = {}
        for category, items in raw_portals.items():
            if category not in CATEGORIES:
                raise ValueError(f"Unknown portal category {category!r}; expected one of {', '.join(CATEGORIES)}")
            records = []
            for item in items or []:
                try:
                    records.append(PortalConfig(**{**item, "type": category}))
                except (TypeError, ValidationError) as e:
                    raise ValueError(f"Invalid portal entry in {category}: {e}") from e
            portals[category] = tuple(records)
        return cls(backend, portals)

    def categories(self) -> List[str]:
        """Declared categories in canonical order."""
        return [c for c in CATEGORIES if c in self._portals]

    def portals(self, category: str) -> Tuple[PortalConfig, ...]:
        if category not in self._portals:
            raise CategoryNotFoundError(category)
        return self._portals[category]

    def find(self, portal_id: str, category: Optional[str] = None) -> PortalConfig:
        """Resolve portal_id (within category when given). Raises PortalNotFoundError."""
        if category is not None:
            for p in self.portals(category):
                if p.id == portal_id:
                    return p
            raise PortalNotFoundError(portal_id, category)
        p = self._by_id.get(portal_id)
        if p is None:
            raise PortalNotFoundError(portal_id)
        return p

    def get_portal_config(self, portal_id: str) -> Optional[PortalConfig]:
        """Lookup by id across all categories. Never raises."""
        return self._by_id.get(portal_id)

    def get_portals_by_type(self, portal_type: str) -> List[PortalConfig]:
        return list(self._portals.get(portal_type, ()))

    def all_portals(self) -> List[PortalConfig]:
        return [p for c in self.categories() for p in self._portals[c]]

    def __iter__(self) -> Iterator[PortalConfig]:
        return iter(self.all_portals())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, portal_id: object) -> bool:
        return portal_id in self._by_id


def load_catalog(path: Optional[Path] = None) -> PortalCatalog:
    """Parse the catalog file. Raises OSError / ValueError on unreadable or invalid input."""
    path = Path(path) if path is not None else get_catalog_path()
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path}: invalid JSON: {e}") from e
    catalog = PortalCatalog.from_dict(data)
    logger.debug("Loaded {} portals from {}", len(catalog), path)
    return catalog


_catalog: Optional[PortalCatalog] = None


def get_catalog() -> PortalCatalog:
    """Process-wide catalog, loaded on first use."""
    global _catalog
    if _catalog is None:
        _catalog = load_catalog()
    return _catalog


def reset_catalog() -> None:
    global _catalog
    _catalog = None


def get_portal_config(portal_id: str) -> Optional[PortalConfig]:
    return get_catalog().get_portal_config(portal_id)


def get_portals_by_type(portal_type: str) -> List[PortalConfig]:
    return get_catalog().get_portals_by_type(portal_type)
