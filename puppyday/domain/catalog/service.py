"""Catalog service - Business logic for managing grooming services"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...errors import ApiError, ApiErrorCode
from ...models import Service, User
from ...shared.formatting import PET_SIZES
from ...shared.validators import validate_uuid
from ..booking.pricing import get_service_price_range
from .repository import CatalogRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


def service_to_dict(service: Service) -> dict:
    prices = {p.size: p.price for p in service.prices}
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "duration_minutes": service.duration_minutes,
        "image_url": service.image_url,
        "is_active": service.is_active,
        "display_order": service.display_order,
        "prices": [{"size": size, "price": prices[size]} for size in PET_SIZES if size in prices],
        "price_range": get_service_price_range(service)["formatted"],
        "created_at": service.created_at,
    }


class CatalogService:
    """Service layer for the admin service catalog"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def list_services(self, include_inactive: bool = True) -> list[dict]:
        return [service_to_dict(s) for s in self.repo.list_services(self.db, include_inactive)]

    def get_service(self, service_id: str) -> Service:
        if not validate_uuid(service_id):
            raise HTTPException(status_code=400, detail="Invalid service ID format")
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def create_service(self, data: ServiceCreate, user: User) -> dict:
        fields = data.model_dump(exclude={"prices"})
        service = self.repo.create_service(self.db, data.prices, **fields)
        logger.info(f"✅ Service '{service.name}' created by {user.id}")
        return service_to_dict(service)

    def update_service(self, service_id: str, data: ServiceUpdate, user: User) -> dict:
        service = self.get_service(service_id)
        updates = data.model_dump(exclude_unset=True, exclude={"prices"})
        service = self.repo.update_service(self.db, service, prices=data.prices, **updates)
        logger.info(f"✅ Service '{service.name}' updated by {user.id}")
        return service_to_dict(service)

    def delete_service(self, service_id: str, user: User) -> dict:
        """Services that were ever booked are kept; staff deactivate them instead"""
        service = self.get_service(service_id)

        if self.repo.count_appointments(self.db, service.id):
            raise ApiError(
                ApiErrorCode.SERVICE_IN_USE,
                message="Cannot delete service with existing appointments. Please deactivate it instead.",
            )
        if self.repo.count_waitlist_references(self.db, service.id):
            raise ApiError(
                ApiErrorCode.SERVICE_IN_USE,
                message="Cannot delete service with waitlist entries. Please deactivate it instead.",
            )

        name = service.name
        self.repo.delete_service(self.db, service)
        logger.info(f"✅ Service '{name}' deleted by {user.id}")
        return {"success": True}
