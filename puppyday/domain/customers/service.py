"""Customer service - admin customer lookup and customer pet management"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Pet, User
from ...shared.formatting import format_phone_number
from ..booking.schemas import PetForm
from .repository import CustomerRepository
from .schemas import CustomerDetailResponse, CustomerResponse, PetResponse

logger = logging.getLogger(__name__)


class CustomerService:
    """Service layer for customer business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def search_customers(self, search: Optional[str], page: int, limit: int) -> tuple[list[dict], int]:
        customers, total = self.repo.search_customers(self.db, search, offset=(page - 1) * limit, limit=limit)
        data = []
        for customer in customers:
            item = CustomerResponse.model_validate(customer).model_dump()
            item["phone_display"] = format_phone_number(customer.phone) if customer.phone else None
            data.append(item)
        return data, total

    def get_customer(self, customer_id: str) -> dict:
        customer = self.repo.get_customer(self.db, customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")

        detail = CustomerDetailResponse.model_validate(customer)
        detail.no_show_count = int((customer.preferences or {}).get("no_show_count") or 0)
        detail.pets = [PetResponse.model_validate(p) for p in customer.pets if p.is_active]
        return detail.model_dump()

    def list_pets(self, owner: User) -> list[Pet]:
        return self.repo.get_pets(self.db, owner.id)

    def add_pet(self, owner: User, data: PetForm) -> Pet:
        pet = self.repo.create_pet(self.db, owner.id, **data.model_dump())
        logger.info(f"✅ Pet {pet.id} added for customer {owner.id}")
        return pet
