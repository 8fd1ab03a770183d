from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from kalvian_roots.logging import get_logger
from kalvian_roots.network.family_network import FamilyNetwork
from kalvian_roots.registry.family_ids import normalize_family_id

log = get_logger("network_cache")

NETWORK_SUMMARIES_KEY = "CachedNetworkSummaries"


@dataclass(slots=True)
class CachedNetwork:
    network: FamilyNetwork
    cached_at: datetime
    extraction_time: float


class FamilyNetworkCache:
    """
    Finished networks by normalized family ID.

    Networks themselves live in memory only. With a store, a short summary
    of every cached network (resolved IDs, warning count, timing) is also
    persisted so a later session can tell what was already processed.
    """

    def __init__(self, store: Any = None):
        self.store = store
        self._networks: Dict[str, CachedNetwork] = {}

    def __contains__(self, family_id: object) -> bool:
        return isinstance(family_id, str) and normalize_family_id(family_id) in self._networks

    def __len__(self) -> int:
        return len(self._networks)

    def get(self, family_id: str) -> Optional[FamilyNetwork]:
        entry = self._networks.get(normalize_family_id(family_id) or "")
        if entry is None:
            return None
        log.debug(f"Cache hit: {family_id}")
        return entry.network

    def put(self, network: FamilyNetwork, extraction_time: float = 0.0) -> None:
        fid = normalize_family_id(network.main_family.family_id)
        entry = CachedNetwork(network, datetime.now(), extraction_time)
        self._networks[fid] = entry
        log.info(f"Cached network {fid} ({network.total_resolved_families} families)")
        if self.store is not None:
            summaries = dict(self.store.get(NETWORK_SUMMARIES_KEY) or {})
            summaries[fid] = {
                "cached_at": entry.cached_at.isoformat(timespec="seconds"),
                "extraction_time": round(extraction_time, 3),
                "families": sorted(network.families),
                "warnings": len(network.warnings),
            }
            self.store.set(NETWORK_SUMMARIES_KEY, summaries)

    def remove(self, family_id: str) -> bool:
        return self._networks.pop(normalize_family_id(family_id) or "", None) is not None

    def clear(self) -> None:
        count = len(self._networks)
        self._networks.clear()
        if self.store is not None:
            self.store.delete(NETWORK_SUMMARIES_KEY)
        log.info(f"Network cache cleared ({count} entries)")

    def cached_ids(self) -> List[str]:
        return sorted(self._networks)

    def persisted_summaries(self) -> Dict[str, Dict[str, Any]]:
        if self.store is None:
            return {}
        return dict(self.store.get(NETWORK_SUMMARIES_KEY) or {})

