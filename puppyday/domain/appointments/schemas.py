"""Appointment domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AppointmentResponse(BaseModel):
    id: str
    booking_reference: Optional[str] = None
    customer_id: str
    pet_id: str
    service_id: str
    groomer_id: Optional[str] = None
    scheduled_at: datetime
    duration_minutes: int
    status: str
    total_price: float
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    source: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StatusUpdateRequest(BaseModel):
    """Body for an admin status change; status is checked by the service for its message"""

    status: Optional[str] = None
    cancellation_reason: Optional[str] = None
    send_notification: bool = True
    send_email: bool = True
    send_sms: bool = False


class CustomerCancelRequest(BaseModel):
    reason: Optional[str] = None


class StatusTransitionResponse(BaseModel):
    to_status: str
    label: str
    requires_confirmation: bool
