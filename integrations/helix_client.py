"""
HTTP client for the Helix backend (system status, agents, UCF state, visualizations).

The client is an explicit object: base URL, cache TTL and the cache store are injected,
so callers can clear the cache or give each request scope its own.
"""
import time
from typing import Any, Callable, Dict, Optional, Tuple

import httpx
from loguru import logger

from portal.config import get_helix_api_url

UCF_FIELDS = ("harmony", "resilience", "prana", "drishti", "klesha", "zoom")


class TTLCache:
    """endpoint -> (stored_at, data)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._items: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str, ttl: float) -> Optional[Any]:
        item = self._items.get(key)
        if item is None:
            return None
        stored_at, data = item
        if self._clock() - stored_at >= ttl:
            return None
        return data

    def set(self, key: str, data: Any) -> None:
        self._items[key] = (self._clock(), data)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class HelixClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        cache_ttl: float = 5.0,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.base_url = (base_url or get_helix_api_url()).rstrip("/")
        self.cache_ttl = cache_ttl
        self.cache = cache if cache is not None else TTLCache()
        self._http = httpx.Client(base_url=self.base_url, transport=transport, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "HelixClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def clear_cache(self) -> None:
        self.cache.clear()

    def _fetch(self, endpoint: str, ttl: Optional[float] = None) -> Any:
        ttl = self.cache_ttl if ttl is None else ttl
        cached = self.cache.get(endpoint, ttl)
        if cached is not None:
            return cached
        try:
            r = self._http.get(endpoint, headers={"Accept": "application/json"})
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Helix API error on {}: {}", endpoint, e)
            raise
        self.cache.set(endpoint, data)
        return data

    def health_check(self) -> Dict[str, Any]:
        return self._fetch("/health", ttl=10.0)

    def get_system_status(self) -> Dict[str, Any]:
        return self._fetch("/status")

    def get_ucf_state(self) -> Dict[str, float]:
        return self.get_system_status().get("ucf_state") or {}

    def get_agents(self) -> Dict[str, Any]:
        return self._fetch("/agents")

    def get_storage_status(self) -> Dict[str, Any]:
        return self._fetch("/storage/status")

    def list_archives(self) -> Dict[str, Any]:
        return self._fetch("/storage/list")

    def is_healthy(self) -> bool:
        try:
            return self.health_check().get("status") in ("healthy", "degraded")
        except (httpx.HTTPError, ValueError):
            return False

    def generate_visualization(self, ucf_state: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
        """POST /visualize/ritual; never cached."""
        body = {k: v for k, v in (ucf_state or {}).items() if k in UCF_FIELDS}
        r = self._http.post("/visualize/ritual", json=body)
        if r.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"Visualization request failed: {r.status_code} {r.reason_phrase}", request=r.request, response=r
            )
        return r.json()

    def get_collective_metrics(self) -> Dict[str, Any]:
        """Averages over every agent's consciousness block."""
        agents = list((self.get_system_status().get("agents") or {}).values())
        if not agents:
            return {
                "totalAgents": 0,
                "activeAgents": 0,
                "averageEmpathy": 0,
                "averageIntelligence": 0,
                "averageCreativity": 0,
                "ethicalAlignment": 0,
                "dominantEmotion": "unknown",
            }

        def avg(values):
            values = list(values)
            return sum(values) / len(values)

        def personality(a, key):
            return float(((a.get("consciousness") or {}).get("personality") or {}).get(key, 0))

        emotions: Dict[str, int] = {}
        for a in agents:
            e = (a.get("consciousness") or {}).get("dominant_emotion")
            if e:
                emotions[e] = emotions.get(e, 0) + 1
        dominant = max(emotions, key=emotions.get) if emotions else "unknown"

        return {
            "totalAgents": len(agents),
            "activeAgents": sum(1 for a in agents if a.get("active")),
            "averageEmpathy": avg(personality(a, "empathy") for a in agents),
            "averageIntelligence": avg(personality(a, "intelligence") for a in agents),
            "averageCreativity": avg(personality(a, "creativity") for a in agents),
            "ethicalAlignment": avg(float((a.get("consciousness") or {}).get("ethical_alignment", 0)) for a in agents),
            "dominantEmotion": dominant,
        }
