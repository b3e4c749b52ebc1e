"""Customer repository - Database operations for customers and their pets"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ...models import Pet, User


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def search_customers(
        db: Session, search: Optional[str] = None, offset: int = 0, limit: int = 25
    ) -> tuple[list[User], int]:
        query = db.query(User).filter(User.role == "customer")
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                    User.phone.ilike(pattern),
                )
            )

        total = query.count()
        customers = query.order_by(User.last_name.asc(), User.first_name.asc()).offset(offset).limit(limit).all()
        return customers, total

    @staticmethod
    def get_customer(db: Session, customer_id: str) -> Optional[User]:
        return (
            db.query(User)
            .options(selectinload(User.pets))
            .filter(User.id == customer_id, User.role == "customer")
            .first()
        )

    @staticmethod
    def get_pets(db: Session, owner_id: str) -> list[Pet]:
        return (
            db.query(Pet)
            .filter(Pet.owner_id == owner_id, Pet.is_active.is_(True))
            .order_by(Pet.name.asc())
            .all()
        )

    @staticmethod
    def create_pet(db: Session, owner_id: str, **pet_data) -> Pet:
        pet = Pet(owner_id=owner_id, **pet_data)
        db.add(pet)
        db.commit()
        db.refresh(pet)
        return pet
