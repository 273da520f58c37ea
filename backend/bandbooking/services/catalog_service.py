from __future__ import annotations

import logging
from typing import Any, Dict, List

from bandbooking.data.catalog_loader import load_fallback_catalog
from bandbooking.schemas.catalog import BandPackage, Catalog, InstrumentCatalogEntry, ServiceDefinition
from bandbooking.services.backend_client import BackendClient, BackendError, get_backend_client

logger = logging.getLogger(__name__)


def project_packages(rows: List[Dict[str, Any]]) -> Dict[str, BandPackage]:
    packages: Dict[str, BandPackage] = {}
    for row in rows:
        package = BandPackage.from_backend(row)
        if package.key and package.active:
            packages[package.key] = package
    return packages


def project_instruments(rows: List[Dict[str, Any]]) -> Dict[str, InstrumentCatalogEntry]:
    instruments: Dict[str, InstrumentCatalogEntry] = {}
    for row in rows:
        entry = InstrumentCatalogEntry.from_backend(row)
        if entry.id and entry.is_eligible:
            instruments[entry.id] = entry
    return instruments


def project_services(rows: List[Dict[str, Any]]) -> List[ServiceDefinition]:
    return [service for service in (ServiceDefinition.from_backend(row) for row in rows) if service.name]


class CatalogService:
    """Loads the catalog and degrades to fallback data instead of failing."""

    def __init__(self, client: BackendClient | None = None) -> None:
        self.client = client or get_backend_client()
        self._catalog: Catalog | None = None

    async def get(self) -> Catalog:
        # A degraded catalog is retried on every read until the backend answers.
        if self._catalog is None or self._catalog.degraded:
            return await self.load()
        return self._catalog

    async def load(self) -> Catalog:
        degraded = False

        try:
            services = project_services(await self.client.list_services())
        except BackendError as exc:
            logger.warning("Service catalog unavailable", extra={"error": exc.message})
            services, degraded = [], True

        try:
            packages = project_packages(await self.client.list_band_packages())
        except BackendError as exc:
            logger.warning("Band packages unavailable, using defaults", extra={"error": exc.message})
            packages, degraded = project_packages(load_fallback_catalog()["band_packages"]), True

        try:
            instruments = project_instruments(await self.client.list_instruments())
        except BackendError as exc:
            logger.warning("Instrument catalog unavailable", extra={"error": exc.message})
            instruments, degraded = {}, True

        self._catalog = Catalog(services=services, packages=packages, instruments=instruments, degraded=degraded)
        logger.info(
            "Catalog loaded",
            extra={"services": len(services), "packages": len(packages), "instruments": len(instruments), "degraded": degraded},
        )
        return self._catalog


_catalog_service: CatalogService | None = None


def get_catalog_service() -> CatalogService:
    global _catalog_service
    if not _catalog_service:
        _catalog_service = CatalogService()
    return _catalog_service
