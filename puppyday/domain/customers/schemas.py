"""Customer domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class PetResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    breed_id: Optional[str] = None
    breed_custom: Optional[str] = None
    size: str
    weight: Optional[float] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class CustomerResponse(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerDetailResponse(CustomerResponse):
    no_show_count: int = 0
    pets: list[PetResponse] = []
