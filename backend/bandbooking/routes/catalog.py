from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from bandbooking.services.catalog_service import CatalogService, get_catalog_service


router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/services")
async def list_services(catalog_service: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    catalog = await catalog_service.get()
    return {"services": [service.model_dump(mode="json") for service in catalog.services], "degraded": catalog.degraded}


@router.get("/band-packages")
async def list_band_packages(catalog_service: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    catalog = await catalog_service.get()
    return {"packages": [package.model_dump(mode="json") for package in catalog.packages.values()], "degraded": catalog.degraded}


@router.get("/instruments")
async def list_instruments(catalog_service: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    catalog = await catalog_service.get()
    return {
        "instruments": [instrument.model_dump(mode="json") for instrument in catalog.instruments.values()],
        "degraded": catalog.degraded,
    }


@router.post("/reload")
async def reload_catalog(catalog_service: CatalogService = Depends(get_catalog_service)) -> Dict[str, Any]:
    catalog = await catalog_service.load()
    return {
        "services": len(catalog.services),
        "packages": len(catalog.packages),
        "instruments": len(catalog.instruments),
        "degraded": catalog.degraded,
    }
