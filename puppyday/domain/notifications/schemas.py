"""Notification domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

Channel = Literal["email", "sms"]


class NotificationMessage(BaseModel):
    """A single message to push through the send pipeline"""

    type: str
    channel: Channel
    recipient: str
    user_id: Optional[str] = None
    template_data: dict[str, Any] = Field(default_factory=dict)
    # Raw content bypasses template lookup (campaigns, admin test sends)
    subject: Optional[str] = None
    html: Optional[str] = None
    text: Optional[str] = None
    is_test: bool = False


class NotificationLogResponse(BaseModel):
    id: str
    customer_id: Optional[str] = None
    type: str
    channel: str
    recipient: str
    subject: Optional[str] = None
    content: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    message_id: Optional[str] = None
    template_data: Optional[dict] = None
    retry_count: int = 0
    retry_after: Optional[datetime] = None
    is_test: bool = False
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TemplateVariable(BaseModel):
    name: str
    required: bool = True
    max_length: Optional[int] = None


class NotificationTemplateResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    type: str
    channel: str
    subject_template: Optional[str] = None
    html_template: Optional[str] = None
    text_template: Optional[str] = None
    variables: list[TemplateVariable] = []
    is_active: bool
    version: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    subject_template: Optional[str] = Field(None, max_length=255)
    html_template: Optional[str] = None
    text_template: Optional[str] = None
    variables: Optional[list[TemplateVariable]] = None
    is_active: Optional[bool] = None
    change_reason: Optional[str] = Field(None, max_length=500)


class TemplatePreviewRequest(BaseModel):
    sample_data: dict[str, Any] = Field(default_factory=dict)


class TemplateHistoryResponse(BaseModel):
    id: str
    template_id: str
    version: int
    name: str
    description: Optional[str] = None
    subject_template: Optional[str] = None
    html_template: Optional[str] = None
    text_template: Optional[str] = None
    variables: list[TemplateVariable] = []
    changed_by: Optional[str] = None
    change_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TemplateRollbackRequest(BaseModel):
    version: int = Field(..., ge=1)
    reason: str = Field(..., min_length=1, max_length=500)


class TemplateTestRequest(BaseModel):
    recipient_email: Optional[str] = None
    recipient_phone: Optional[str] = None
    sample_data: dict[str, Any] = Field(default_factory=dict)


class BulkResendFilters(BaseModel):
    type: Optional[str] = None
    channel: Optional[Channel] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class BulkResendRequest(BaseModel):
    ids: Optional[list[str]] = Field(None, min_length=1, max_length=100)
    filters: Optional[BulkResendFilters] = None


class NotificationSettingResponse(BaseModel):
    notification_type: str
    email_enabled: bool
    sms_enabled: bool
    schedule_cron: Optional[str] = None
    max_retries: int
    retry_delays_seconds: Optional[list[int]] = None

    class Config:
        from_attributes = True


class NotificationSettingUpdate(BaseModel):
    email_enabled: Optional[bool] = None
    sms_enabled: Optional[bool] = None
    schedule_cron: Optional[str] = Field(None, max_length=50)
    max_retries: Optional[int] = Field(None, ge=0, le=10)
    retry_delays_seconds: Optional[list[int]] = None


class NotificationPreferencesUpdate(BaseModel):
    marketing_enabled: Optional[bool] = None
    email_appointment_reminders: Optional[bool] = None
    sms_appointment_reminders: Optional[bool] = None
    email_retention_reminders: Optional[bool] = None
    sms_retention_reminders: Optional[bool] = None
