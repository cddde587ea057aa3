"""
ToxinFlow: Reference Data Store
===============================
Read-only view over the dose tables, session limits and pathology protocols.
Built once per process; safe to share between sessions and threads since
nothing mutates it after load.
"""

import logging
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Tuple

from constants import TOXIN_LIBRARY, SAFETY_CONSTANTS, ToxinBrand, MuscleDoseRange
from models import Pathology, ReferenceNotFound, UnknownPathologyError
from protocols import PATHOLOGY_LIBRARY

logger = logging.getLogger(__name__)

class ReferenceDataStore:
    def __init__(self, dose_tables: Dict[ToxinBrand, Dict[str, MuscleDoseRange]],
                 session_limits: Dict[ToxinBrand, int],
                 pathologies: Tuple[Pathology, ...]):
        missing = [b.value for b in ToxinBrand if b not in session_limits]
        if missing:
            raise ValueError(f"No session limit configured for: {', '.join(missing)}")

        self._dose_tables = MappingProxyType({
            brand: MappingProxyType(dict(table)) for brand, table in dose_tables.items()
        })
        self._session_limits = MappingProxyType(dict(session_limits))
        self._pathologies = MappingProxyType({p.id: p for p in pathologies})

    def get_dose_range(self, brand: ToxinBrand, muscle_name: str) -> MuscleDoseRange:
        """Raises ReferenceNotFound; callers skip the muscle rather than abort."""
        table = self._dose_tables.get(brand, {})
        try:
            return table[muscle_name]
        except KeyError:
            raise ReferenceNotFound(f"{muscle_name!r} has no reference dose for {brand.value}") from None

    def has_muscle(self, brand: ToxinBrand, muscle_name: str) -> bool:
        return muscle_name in self._dose_tables.get(brand, {})

    def get_session_limit(self, brand: ToxinBrand) -> int:
        return self._session_limits[brand]

    def list_muscles(self, brand: ToxinBrand) -> Tuple[str, ...]:
        """Muscle names in table order (deterministic)."""
        return tuple(self._dose_tables.get(brand, {}))

    def dose_table(self, brand: ToxinBrand):
        return self._dose_tables.get(brand, MappingProxyType({}))

    def get_pathology(self, pathology_id: str) -> Pathology:
        try:
            return self._pathologies[pathology_id]
        except KeyError:
            raise UnknownPathologyError(f"Unknown pathology: {pathology_id!r}") from None

    def list_pathologies(self) -> Tuple[Pathology, ...]:
        return tuple(self._pathologies.values())

@lru_cache(maxsize=1)
def load_reference_data() -> ReferenceDataStore:
    """Process-wide store built from the static tables."""
    store = ReferenceDataStore(
        dose_tables=TOXIN_LIBRARY.SPECS,
        session_limits=SAFETY_CONSTANTS.SESSION_LIMITS_UNITS,
        pathologies=PATHOLOGY_LIBRARY.SPECS,
    )
    logger.debug(
        "Reference data loaded: "
        + ", ".join(f"{b.value}={len(store.list_muscles(b))} muscles" for b in ToxinBrand)
    )
    return store
