from __future__ import annotations

import logging
from typing import Optional

from .model import AbsenceCatalog
from .repository import AbsenceTypeRepository

logger = logging.getLogger(__name__)


class AbsenceCatalogService:
    """Loads the absence catalog once and serves it until refreshed."""

    def __init__(self, absence_types: AbsenceTypeRepository):
        self._absence_types = absence_types
        self._cached: Optional[AbsenceCatalog] = None

    async def load(self, *, refresh: bool = False) -> AbsenceCatalog:
        if self._cached is not None and not refresh:
            return self._cached

        catalog = AbsenceCatalog(await self._absence_types.list_active())
        if not catalog.is_loaded:
            # Not cached: an empty catalog relaxes status checks and should be retried.
            logger.warning("Absence catalog is empty; status membership checks are relaxed")
            return catalog

        self._cached = catalog
        logger.debug("Loaded absence catalog with %d types", len(catalog))
        return catalog
