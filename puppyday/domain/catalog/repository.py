"""Catalog repository - Database operations for grooming services and their size prices"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Appointment, Service, ServicePrice, WaitlistEntry, WaitlistSlotOffer


class CatalogRepository:
    """Repository for service catalog database operations"""

    @staticmethod
    def list_services(db: Session, include_inactive: bool = True) -> list[Service]:
        query = db.query(Service).options(selectinload(Service.prices))
        if not include_inactive:
            query = query.filter(Service.is_active.is_(True))
        return query.order_by(Service.display_order.asc(), Service.name.asc()).all()

    @staticmethod
    def get_service(db: Session, service_id: str) -> Optional[Service]:
        return db.query(Service).options(selectinload(Service.prices)).filter(Service.id == service_id).first()

    @staticmethod
    def create_service(db: Session, prices: dict[str, float], **service_data) -> Service:
        service = Service(**service_data)
        service.prices = [ServicePrice(size=size, price=price) for size, price in prices.items()]
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: Service, prices: Optional[dict[str, float]] = None, **updates) -> Service:
        for key, value in updates.items():
            setattr(service, key, value)
        if prices is not None:
            existing = {p.size: p for p in service.prices}
            for size, price in prices.items():
                if size in existing:
                    existing[size].price = price
                else:
                    service.prices.append(ServicePrice(size=size, price=price))
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()

    @staticmethod
    def count_appointments(db: Session, service_id: str) -> int:
        return db.query(Appointment.id).filter(Appointment.service_id == service_id).count()

    @staticmethod
    def count_waitlist_references(db: Session, service_id: str) -> int:
        entries = db.query(WaitlistEntry.id).filter(WaitlistEntry.service_id == service_id).count()
        offers = db.query(WaitlistSlotOffer.id).filter(WaitlistSlotOffer.service_id == service_id).count()
        return entries + offers
