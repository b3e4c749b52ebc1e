"""Campaign service - campaign CRUD, sending and scheduled dispatch"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...errors import ApiError, ApiErrorCode
from ...models import MarketingCampaign, User
from ...shared.dates import utcnow
from ..booking.service import to_naive_utc
from ..notifications.service import NotificationService
from .schemas import CampaignCreate, CampaignUpdate, SegmentCriteria
from .sender import get_audience, send_campaign
from .validation import validate_complete_campaign

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = ("draft", "scheduled")
SORTABLE_COLUMNS = ("created_at", "updated_at", "name", "scheduled_at", "sent_at", "status")


def _campaign_fields(campaign: MarketingCampaign) -> dict:
    return {
        "name": campaign.name,
        "type": campaign.type,
        "channel": campaign.channel,
        "segment_criteria": campaign.segment_criteria,
        "message_content": campaign.message_content,
        "ab_test_config": campaign.ab_test_config,
        "scheduled_at": campaign.scheduled_at,
        "recurring_config": campaign.recurring_config,
    }


def _raise_if_invalid(payload: dict, now: Optional[datetime] = None) -> None:
    result = validate_complete_campaign(payload, now=now)
    if not result["is_valid"]:
        details = [{"path": e["field"], "message": e["message"]} for e in result["errors"]]
        raise ApiError(ApiErrorCode.VALIDATION_ERROR, message=details[0]["message"], details=details)


class CampaignService:
    """Service layer for marketing campaigns"""

    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.notification_service = notification_service

    def get_campaign(self, campaign_id: str) -> MarketingCampaign:
        campaign = self.db.query(MarketingCampaign).filter(MarketingCampaign.id == campaign_id).first()
        if not campaign:
            raise HTTPException(status_code=404, detail="Campaign not found")
        return campaign

    def list_campaigns(
        self,
        status: Optional[str],
        page: int,
        limit: int,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[MarketingCampaign], int]:
        query = self.db.query(MarketingCampaign)
        if status:
            query = query.filter(MarketingCampaign.status == status)

        column = getattr(MarketingCampaign, sort_by if sort_by in SORTABLE_COLUMNS else "created_at")
        total = query.count()
        campaigns = (
            query.order_by(column.asc() if sort_order == "asc" else column.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return campaigns, total

    def create_campaign(self, data: CampaignCreate, staff: User) -> MarketingCampaign:
        criteria = data.segment_criteria.to_filters()
        _raise_if_invalid({**data.model_dump(), "segment_criteria": criteria})

        scheduled_at = to_naive_utc(data.scheduled_at) if data.scheduled_at and not data.send_now else None
        campaign = MarketingCampaign(
            name=data.name.strip(),
            description=data.description,
            type=data.type,
            channel=data.channel,
            status="scheduled" if scheduled_at else "draft",
            segment_criteria=criteria,
            message_content=data.message_content,
            ab_test_config=data.ab_test_config,
            scheduled_at=scheduled_at,
            recurring_config=data.recurring_config,
            created_by=staff.id,
        )
        self.db.add(campaign)
        self.db.commit()
        self.db.refresh(campaign)
        logger.info(f"✅ Campaign '{campaign.name}' created by {staff.id} ({campaign.status})")
        return campaign

    def update_campaign(self, campaign_id: str, data: CampaignUpdate) -> MarketingCampaign:
        campaign = self.get_campaign(campaign_id)
        if campaign.status not in EDITABLE_STATUSES:
            raise HTTPException(status_code=400, detail="Only draft or scheduled campaigns can be edited")

        updates = data.model_dump(exclude_unset=True)
        if data.segment_criteria is not None:
            updates["segment_criteria"] = data.segment_criteria.to_filters()
        if updates.get("scheduled_at"):
            updates["scheduled_at"] = to_naive_utc(updates["scheduled_at"])

        merged = {**_campaign_fields(campaign), **updates}
        _raise_if_invalid({**merged, "send_now": merged.get("scheduled_at") is None})

        for key, value in updates.items():
            setattr(campaign, key, value)
        campaign.status = "scheduled" if campaign.scheduled_at else "draft"
        self.db.commit()
        self.db.refresh(campaign)
        return campaign

    def cancel_campaign(self, campaign_id: str) -> MarketingCampaign:
        campaign = self.get_campaign(campaign_id)
        if campaign.status not in EDITABLE_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot cancel a campaign with status {campaign.status}")
        campaign.status = "cancelled"
        self.db.commit()
        self.db.refresh(campaign)
        logger.info(f"🔕 Campaign {campaign.id} cancelled")
        return campaign

    def preview_audience(self, criteria: SegmentCriteria) -> dict:
        return {"count": len(get_audience(self.db, criteria.to_filters()))}

    async def send_campaign(self, campaign_id: str) -> dict:
        campaign = self.get_campaign(campaign_id)
        if campaign.status not in EDITABLE_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot send a campaign with status {campaign.status}")
        return await self._send(campaign)

    async def _send(self, campaign: MarketingCampaign) -> dict:
        campaign.status = "sending"
        self.db.commit()

        try:
            result = await send_campaign(self.db, campaign, service=self.notification_service)
        except Exception as e:
            logger.error(f"❌ Campaign {campaign.id} failed mid-send: {e}")
            self.db.rollback()
            campaign.status = "draft"
            self.db.commit()
            raise

        campaign.status = "sent"
        campaign.sent_at = utcnow()
        self.db.commit()
        return result

    async def dispatch_scheduled(self, now: Optional[datetime] = None) -> dict:
        """Send every scheduled campaign that has come due"""
        now = now or utcnow()
        due = (
            self.db.query(MarketingCampaign)
            .filter(MarketingCampaign.status == "scheduled", MarketingCampaign.scheduled_at <= now)
            .all()
        )
        summary = {"dispatched": 0, "failed": 0}
        for campaign in due:
            try:
                await self._send(campaign)
                summary["dispatched"] += 1
            except Exception as e:
                logger.error(f"❌ Scheduled campaign {campaign.id} failed: {e}")
                summary["failed"] += 1
        return summary
