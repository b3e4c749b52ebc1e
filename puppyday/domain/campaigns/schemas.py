"""Campaign domain schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class SegmentCriteria(BaseModel):
    """Audience filters; unset filters do not narrow the segment"""

    last_visit_days: Optional[int] = None
    min_visits: Optional[int] = None
    max_visits: Optional[int] = None
    min_appointments: Optional[int] = None
    max_appointments: Optional[int] = None
    min_total_spend: Optional[float] = None
    not_visited_since: Optional[str] = None
    has_membership: Optional[bool] = None
    loyalty_eligible: Optional[bool] = None
    has_upcoming_appointment: Optional[bool] = None
    pet_size: Optional[list[str]] = None
    service_ids: Optional[list[str]] = None
    breed_ids: Optional[list[str]] = None
    tags: Optional[list[str]] = None

    def to_filters(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CampaignCreate(BaseModel):
    name: str
    description: Optional[str] = None
    type: str
    channel: str
    segment_criteria: SegmentCriteria = SegmentCriteria()
    message_content: dict[str, Any] = {}
    ab_test_config: Optional[dict[str, Any]] = None
    scheduled_at: Optional[datetime] = None
    recurring_config: Optional[dict[str, Any]] = None
    send_now: bool = False


class CampaignUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    channel: Optional[str] = None
    segment_criteria: Optional[SegmentCriteria] = None
    message_content: Optional[dict[str, Any]] = None
    ab_test_config: Optional[dict[str, Any]] = None
    scheduled_at: Optional[datetime] = None
    recurring_config: Optional[dict[str, Any]] = None


class AudiencePreviewRequest(BaseModel):
    segment_criteria: SegmentCriteria


class CampaignResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    type: str
    channel: str
    status: str
    segment_criteria: dict[str, Any]
    message_content: dict[str, Any]
    ab_test_config: Optional[dict[str, Any]] = None
    scheduled_at: Optional[datetime] = None
    recurring_config: Optional[dict[str, Any]] = None
    sent_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
