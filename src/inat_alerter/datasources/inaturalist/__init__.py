"""iNaturalist observation data source.

Queries the public (keyless) iNaturalist API v1 for observations around a
point and for per-taxon observation counts.

Public API:
  - client: InatClient (retry/backoff/rate-limit handling) and its errors
  - observations: fetch_observations, build_search_params, parse_observation
  - rarity: RarityCalculator, RarityCount
"""

from inat_alerter.datasources.inaturalist.client import (
    ClientError,
    InatApiError,
    InatClient,
    ResponseDecodeError,
    RetriesExhaustedError,
    UnexpectedStatusError,
)
from inat_alerter.datasources.inaturalist.observations import (
    MAX_RESULTS,
    PAGE_SIZE,
    build_search_params,
    fetch_observations,
    parse_observation,
)
from inat_alerter.datasources.inaturalist.rarity import RarityCalculator, RarityCount

__all__ = [
    "MAX_RESULTS",
    "PAGE_SIZE",
    "ClientError",
    "InatApiError",
    "InatClient",
    "RarityCalculator",
    "RarityCount",
    "ResponseDecodeError",
    "RetriesExhaustedError",
    "UnexpectedStatusError",
    "build_search_params",
    "fetch_observations",
    "parse_observation",
]
