"""Customer router - admin customer lookup and customer pets"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from ...shared.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, paginated
from ..booking.schemas import PetForm
from .schemas import PetResponse
from .service import CustomerService

router = APIRouter(prefix="/api/admin/customers", tags=["Customers"])
customer_router = APIRouter(prefix="/api/customer/pets", tags=["Customers"])


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    """Dependency injection for CustomerService"""
    return CustomerService(db)


@router.get("")
async def search_customers(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: User = Depends(require_admin),
    service: CustomerService = Depends(get_customer_service),
):
    data, total = service.search_customers(search, page, limit)
    return paginated(data, page, limit, total)


@router.get("/{customer_id}")
async def get_customer(
    customer_id: str,
    _: User = Depends(require_admin),
    service: CustomerService = Depends(get_customer_service),
):
    return {"data": service.get_customer(customer_id)}


@customer_router.get("")
async def list_my_pets(
    current_user: User = Depends(get_current_user),
    service: CustomerService = Depends(get_customer_service),
):
    return {"data": [PetResponse.model_validate(p).model_dump() for p in service.list_pets(current_user)]}


@customer_router.post("", status_code=201)
async def add_pet(
    data: PetForm,
    current_user: User = Depends(get_current_user),
    service: CustomerService = Depends(get_customer_service),
):
    return {"data": PetResponse.model_validate(service.add_pet(current_user, data)).model_dump()}
