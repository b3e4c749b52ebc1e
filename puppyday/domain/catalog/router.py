"""Catalog router - admin CRUD for grooming services and their size prices"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from .schemas import ServiceCreate, ServiceUpdate
from .service import CatalogService, service_to_dict

router = APIRouter(prefix="/api/admin/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


@router.get("")
async def list_services(
    include_inactive: bool = Query(True),
    _: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"data": service.list_services(include_inactive)}


@router.post("", status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"data": service.create_service(data, current_user)}


@router.get("/{service_id}")
async def get_service(
    service_id: str,
    _: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"data": service_to_dict(service.get_service(service_id))}


@router.patch("/{service_id}")
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    current_user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return {"data": service.update_service(service_id, data, current_user)}


@router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    current_user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.delete_service(service_id, current_user)
