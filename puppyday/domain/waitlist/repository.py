"""Waitlist repository - Database operations for waitlist entries and slot offers"""

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import WaitlistEntry, WaitlistSlotOffer
from .matcher import MATCH_WINDOW_DAYS


class WaitlistRepository:
    """Repository for waitlist database operations"""

    @staticmethod
    def get_entry(db: Session, entry_id: str) -> Optional[WaitlistEntry]:
        return (
            db.query(WaitlistEntry)
            .options(
                joinedload(WaitlistEntry.customer),
                joinedload(WaitlistEntry.pet),
                joinedload(WaitlistEntry.service),
            )
            .filter(WaitlistEntry.id == entry_id)
            .first()
        )

    @staticmethod
    def get_entries(db: Session, entry_ids: list[str]) -> list[WaitlistEntry]:
        if not entry_ids:
            return []
        return (
            db.query(WaitlistEntry)
            .options(joinedload(WaitlistEntry.customer), joinedload(WaitlistEntry.pet))
            .filter(WaitlistEntry.id.in_(entry_ids))
            .all()
        )

    @staticmethod
    def find_active_duplicate(
        db: Session, pet_id: str, service_id: str, requested_date: date
    ) -> Optional[WaitlistEntry]:
        return (
            db.query(WaitlistEntry)
            .filter(
                WaitlistEntry.pet_id == pet_id,
                WaitlistEntry.service_id == service_id,
                WaitlistEntry.requested_date == requested_date,
                WaitlistEntry.status == "active",
            )
            .first()
        )

    @staticmethod
    def create_entry(db: Session, **entry_data) -> WaitlistEntry:
        entry = WaitlistEntry(**entry_data)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def get_candidates(db: Session, service_id: str, slot_day: date) -> list[WaitlistEntry]:
        """Active entries for a service requested within the match window of a day"""
        window = timedelta(days=MATCH_WINDOW_DAYS)
        return (
            db.query(WaitlistEntry)
            .options(joinedload(WaitlistEntry.customer), joinedload(WaitlistEntry.pet))
            .filter(
                WaitlistEntry.service_id == service_id,
                WaitlistEntry.status == "active",
                WaitlistEntry.requested_date >= slot_day - window,
                WaitlistEntry.requested_date <= slot_day + window,
            )
            .all()
        )

    @staticmethod
    def get_oldest_active(db: Session, limit: int, service_id: Optional[str] = None) -> list[WaitlistEntry]:
        query = (
            db.query(WaitlistEntry)
            .options(joinedload(WaitlistEntry.customer), joinedload(WaitlistEntry.pet))
            .filter(WaitlistEntry.status == "active")
        )
        if service_id:
            query = query.filter(WaitlistEntry.service_id == service_id)
        return query.order_by(WaitlistEntry.created_at.asc()).limit(limit).all()

    @staticmethod
    def search(
        db: Session,
        status: Optional[str] = None,
        service_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 25,
    ) -> tuple[list[WaitlistEntry], int]:
        query = db.query(WaitlistEntry)
        if status:
            query = query.filter(WaitlistEntry.status == status)
        if service_id:
            query = query.filter(WaitlistEntry.service_id == service_id)
        if customer_id:
            query = query.filter(WaitlistEntry.customer_id == customer_id)

        total = query.count()
        entries = (
            query.options(joinedload(WaitlistEntry.customer), joinedload(WaitlistEntry.pet))
            .order_by(WaitlistEntry.requested_date.asc(), WaitlistEntry.created_at.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return entries, total

    @staticmethod
    def update_entry(db: Session, entry: WaitlistEntry, **updates) -> WaitlistEntry:
        for key, value in updates.items():
            setattr(entry, key, value)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def create_offer(db: Session, **offer_data) -> WaitlistSlotOffer:
        offer = WaitlistSlotOffer(**offer_data)
        db.add(offer)
        db.commit()
        db.refresh(offer)
        return offer

    @staticmethod
    def get_offer(db: Session, offer_id: str) -> Optional[WaitlistSlotOffer]:
        return db.query(WaitlistSlotOffer).filter(WaitlistSlotOffer.id == offer_id).first()

    @staticmethod
    def expire_notified_entries(db: Session, now: datetime) -> int:
        count = (
            db.query(WaitlistEntry)
            .filter(
                WaitlistEntry.status == "notified",
                WaitlistEntry.offer_expires_at.isnot(None),
                WaitlistEntry.offer_expires_at < now,
            )
            .update({WaitlistEntry.status: "expired_offer"}, synchronize_session=False)
        )
        db.commit()
        return count

    @staticmethod
    def expire_pending_offers(db: Session, now: datetime) -> int:
        count = (
            db.query(WaitlistSlotOffer)
            .filter(WaitlistSlotOffer.status == "pending", WaitlistSlotOffer.expires_at < now)
            .update({WaitlistSlotOffer.status: "expired"}, synchronize_session=False)
        )
        db.commit()
        return count
