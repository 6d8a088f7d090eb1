"""Rarity counts: how many observations of a taxon exist in a scope.

A lower count means a rarer taxon.  Counts come from count-only
``/observations?per_page=0`` queries, narrowing from the configured scope
outward::

    radius  ->  place (if place_id)  ->  global

Each failed strategy is logged and the next one tried.  If all fail the
taxon gets a count of 0.  Results, including that 0, are memoised for the
lifetime of the :class:`RarityCalculator`; build one per workflow run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from inat_alerter.datasources.inaturalist.client import InatApiError
from inat_alerter.schemas import RarityMethod

if TYPE_CHECKING:
    from inat_alerter.datasources.inaturalist.client import InatClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RarityCount:
    """Observation count for one taxon and the scope that produced it.

    ``method`` is None when every strategy failed and ``count`` is the
    0 placeholder.
    """

    count: int
    method: RarityMethod | None


class RarityCalculator:
    """Per-run memoising rarity counter.

    Args:
        client: iNaturalist client used for the count queries.
        method: Preferred scope.
        lat, lng, radius: Search circle for the ``radius`` scope (km).
        place_id: iNaturalist place for the ``place`` scope, optional.
    """

    def __init__(
        self,
        client: InatClient,
        *,
        method: RarityMethod,
        lat: float,
        lng: float,
        radius: float,
        place_id: int | None = None,
    ) -> None:
        self.client = client
        self.method = method
        self.lat = lat
        self.lng = lng
        self.radius = radius
        self.place_id = place_id
        self._cache: dict[int, RarityCount] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, taxon_id: object) -> bool:
        return taxon_id in self._cache

    def strategies(self) -> list[RarityMethod]:
        """Scopes to try, in order, for the configured method."""
        order: list[RarityMethod] = []
        if self.method is RarityMethod.RADIUS:
            order.append(RarityMethod.RADIUS)
        if self.method in (RarityMethod.RADIUS, RarityMethod.PLACE) and self.place_id:
            order.append(RarityMethod.PLACE)
        order.append(RarityMethod.GLOBAL)
        return order

    def count(self, taxon_id: int) -> int:
        """Observation count for ``taxon_id`` (0 if it cannot be determined)."""
        return self.lookup(taxon_id).count

    def lookup(self, taxon_id: int) -> RarityCount:
        """Count plus the scope that produced it; never raises on API failure."""
        cached = self._cache.get(taxon_id)
        if cached is not None:
            return cached

        result = RarityCount(count=0, method=None)
        for strategy in self.strategies():
            try:
                data = self.client.get("observations", self._params(taxon_id, strategy))
                count = int(data.get("total_results") or 0)
            except (InatApiError, TypeError, ValueError) as exc:
                logger.warning(
                    "Failed to get %s-based count for taxon %d: %s", strategy, taxon_id, exc
                )
                continue
            result = RarityCount(count=count, method=strategy)
            logger.info("Rarity count for taxon %d (%s): %d", taxon_id, strategy, result.count)
            break
        else:
            logger.warning("All rarity strategies failed for taxon %d; using 0", taxon_id)

        self._cache[taxon_id] = result
        return result

    def _params(self, taxon_id: int, strategy: RarityMethod) -> dict[str, Any]:
        params: dict[str, Any] = {"taxon_id": taxon_id, "per_page": 0}
        if strategy is RarityMethod.RADIUS:
            params.update(lat=self.lat, lng=self.lng, radius=self.radius)
        elif strategy is RarityMethod.PLACE:
            params["place_id"] = self.place_id
        return params
