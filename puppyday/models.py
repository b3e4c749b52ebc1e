import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Primary keys are UUID strings so they can be exposed in links and SMS"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), default="customer", nullable=False)  # customer, admin, groomer
    is_active = Column(Boolean, default=True, nullable=False)
    # Notification flags plus counters such as no_show_count
    preferences = Column(JSON, default=dict, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    pets = relationship("Pet", back_populates="owner")
    appointments = relationship(
        "Appointment", back_populates="customer", foreign_keys="Appointment.customer_id"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Breed(Base):
    __tablename__ = "breeds"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False)
    grooming_frequency_weeks = Column(Integer, default=8, nullable=False)


class Pet(Base):
    __tablename__ = "pets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String(50), nullable=False)
    breed_id = Column(String(36), ForeignKey("breeds.id"), nullable=True)
    breed_custom = Column(String(100), nullable=True)
    size = Column(String(10), nullable=False)  # small, medium, large, xlarge
    weight = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("User", back_populates="pets")
    breed = relationship("Breed")


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, default=60, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    image_url = Column(String(500), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    prices = relationship("ServicePrice", back_populates="service", cascade="all, delete-orphan")


class ServicePrice(Base):
    __tablename__ = "service_prices"
    __table_args__ = (UniqueConstraint("service_id", "size", name="uq_service_prices_service_size"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    service_id = Column(String(36), ForeignKey("services.id"), index=True, nullable=False)
    size = Column(String(10), nullable=False)
    price = Column(Float, nullable=False)

    service = relationship("Service", back_populates="prices")


class Addon(Base):
    __tablename__ = "addons"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    booking_reference = Column(String(30), unique=True, index=True, nullable=True)
    customer_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    pet_id = Column(String(36), ForeignKey("pets.id"), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    groomer_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    scheduled_at = Column(DateTime, index=True, nullable=False)  # naive UTC
    duration_minutes = Column(Integer, default=60, nullable=False)
    status = Column(String(20), default="pending", index=True, nullable=False)
    total_price = Column(Float, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(String(500), nullable=True)
    source = Column(String(20), default="online", nullable=False)  # online, admin, walk_in, waitlist
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User", back_populates="appointments", foreign_keys=[customer_id])
    groomer = relationship("User", foreign_keys=[groomer_id])
    pet = relationship("Pet")
    service = relationship("Service")
    addons = relationship(
        "AppointmentAddon", back_populates="appointment", cascade="all, delete-orphan"
    )


class AppointmentAddon(Base):
    __tablename__ = "appointment_addons"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), index=True, nullable=False)
    addon_id = Column(String(36), ForeignKey("addons.id"), nullable=False)
    price = Column(Float, nullable=False)  # price at booking time

    appointment = relationship("Appointment", back_populates="addons")
    addon = relationship("Addon")


class WaitlistEntry(Base):
    __tablename__ = "waitlist"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    pet_id = Column(String(36), ForeignKey("pets.id"), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), index=True, nullable=False)
    requested_date = Column(Date, nullable=False)
    requested_time = Column(String(10), default="any", nullable=False)  # morning, afternoon, any
    # active, notified, booked, expired_offer, cancelled, filled
    status = Column(String(20), default="active", index=True, nullable=False)
    notes = Column(Text, nullable=True)
    offer_id = Column(String(36), ForeignKey("waitlist_slot_offers.id"), nullable=True)
    offer_expires_at = Column(DateTime, nullable=True)
    notified_at = Column(DateTime, nullable=True)
    notification_attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User")
    pet = relationship("Pet")
    service = relationship("Service")
    offer = relationship("WaitlistSlotOffer")


class WaitlistSlotOffer(Base):
    __tablename__ = "waitlist_slot_offers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    slot_date = Column(Date, nullable=False)
    slot_time = Column(String(5), nullable=False)  # HH:MM business time
    discount_percentage = Column(Integer, default=10, nullable=False)
    response_window_hours = Column(Integer, default=2, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, accepted, expired, cancelled
    expires_at = Column(DateTime, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class NotificationLog(Base):
    __tablename__ = "notifications_log"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=True)
    type = Column(String(50), index=True, nullable=False)
    channel = Column(String(10), nullable=False)  # email, sms
    recipient = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=True)
    content = Column(Text, nullable=True)  # rendered plain text / SMS body
    html_content = Column(Text, nullable=True)  # rendered email HTML, kept for retries
    status = Column(String(20), default="pending", index=True, nullable=False)  # pending, sent, failed
    error_message = Column(Text, nullable=True)
    message_id = Column(String(255), nullable=True)
    template_id = Column(String(36), ForeignKey("notification_templates.id"), nullable=True)
    template_data = Column(JSON, nullable=True)
    retry_count = Column(Integer, default=0, nullable=False)
    retry_after = Column(DateTime, nullable=True)
    is_test = Column(Boolean, default=False, nullable=False)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)


class NotificationTemplate(Base):
    __tablename__ = "notification_templates"
    __table_args__ = (UniqueConstraint("type", "channel", name="uq_notification_templates_type_channel"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(50), nullable=False)
    channel = Column(String(10), nullable=False)
    subject_template = Column(String(255), nullable=True)
    html_template = Column(Text, nullable=True)
    text_template = Column(Text, nullable=True)
    # [{"name": "pet_name", "required": true, "max_length": 20}]
    variables = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class NotificationTemplateHistory(Base):
    """Snapshot of a template as it was before an edit or rollback"""

    __tablename__ = "notification_template_history"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    template_id = Column(String(36), ForeignKey("notification_templates.id"), index=True, nullable=False)
    version = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(50), nullable=False)
    channel = Column(String(10), nullable=False)
    subject_template = Column(String(255), nullable=True)
    html_template = Column(Text, nullable=True)
    text_template = Column(Text, nullable=True)
    variables = Column(JSON, default=list, nullable=False)
    changed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    change_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class NotificationSetting(Base):
    __tablename__ = "notification_settings"

    notification_type = Column(String(50), primary_key=True)
    email_enabled = Column(Boolean, default=True, nullable=False)
    sms_enabled = Column(Boolean, default=True, nullable=False)
    schedule_cron = Column(String(50), nullable=True)
    max_retries = Column(Integer, default=2, nullable=False)
    retry_delays_seconds = Column(JSON, default=list, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class MarketingCampaign(Base):
    __tablename__ = "marketing_campaigns"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), default="one_time", nullable=False)  # one_time, recurring
    channel = Column(String(10), nullable=False)  # email, sms, both
    # draft, scheduled, sending, sent, cancelled
    status = Column(String(20), default="draft", index=True, nullable=False)
    segment_criteria = Column(JSON, default=dict, nullable=False)
    message_content = Column(JSON, default=dict, nullable=False)
    ab_test_config = Column(JSON, nullable=True)
    scheduled_at = Column(DateTime, nullable=True)
    recurring_config = Column(JSON, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    sends = relationship("CampaignSend", back_populates="campaign", cascade="all, delete-orphan")


class CampaignSend(Base):
    __tablename__ = "campaign_sends"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("marketing_campaigns.id"), index=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    variant = Column(String(1), nullable=True)  # A or B
    tracking_id = Column(String(36), default=generate_uuid, unique=True, nullable=False)
    notification_log_id = Column(String(36), ForeignKey("notifications_log.id"), nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, sent, skipped, failed
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    campaign = relationship("MarketingCampaign", back_populates="sends")


class MarketingUnsubscribe(Base):
    __tablename__ = "marketing_unsubscribes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=True)
    email = Column(String(255), nullable=True)
    unsubscribed_from = Column(String(10), nullable=False)  # email, sms, both
    created_at = Column(DateTime, server_default=func.now())


class Setting(Base):
    __tablename__ = "settings"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
