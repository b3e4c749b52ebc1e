"""Notification repository - Database operations for logs, templates and settings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import NotificationLog, NotificationSetting, NotificationTemplate, NotificationTemplateHistory


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def get_template(db: Session, notification_type: str, channel: str) -> Optional[NotificationTemplate]:
        return (
            db.query(NotificationTemplate)
            .filter(
                NotificationTemplate.type == notification_type,
                NotificationTemplate.channel == channel,
                NotificationTemplate.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def get_template_by_id(db: Session, template_id: str) -> Optional[NotificationTemplate]:
        return db.query(NotificationTemplate).filter(NotificationTemplate.id == template_id).first()

    @staticmethod
    def list_templates(
        db: Session, notification_type: Optional[str] = None, channel: Optional[str] = None
    ) -> list[NotificationTemplate]:
        query = db.query(NotificationTemplate)
        if notification_type:
            query = query.filter(NotificationTemplate.type == notification_type)
        if channel:
            query = query.filter(NotificationTemplate.channel == channel)
        return query.order_by(NotificationTemplate.type, NotificationTemplate.channel).all()

    @staticmethod
    def add_template_history(
        db: Session, template: NotificationTemplate, changed_by: Optional[str], reason: Optional[str]
    ) -> NotificationTemplateHistory:
        """Stage a snapshot of the template as it is now; committed with the change that follows"""
        entry = NotificationTemplateHistory(
            template_id=template.id,
            version=template.version or 1,
            name=template.name,
            description=template.description,
            type=template.type,
            channel=template.channel,
            subject_template=template.subject_template,
            html_template=template.html_template,
            text_template=template.text_template,
            variables=list(template.variables or []),
            changed_by=changed_by,
            change_reason=reason,
        )
        db.add(entry)
        return entry

    @staticmethod
    def get_template_history(db: Session, template_id: str) -> list[NotificationTemplateHistory]:
        return (
            db.query(NotificationTemplateHistory)
            .filter(NotificationTemplateHistory.template_id == template_id)
            .order_by(NotificationTemplateHistory.version.desc(), NotificationTemplateHistory.created_at.desc())
            .all()
        )

    @staticmethod
    def get_template_version(db: Session, template_id: str, version: int) -> Optional[NotificationTemplateHistory]:
        return (
            db.query(NotificationTemplateHistory)
            .filter(
                NotificationTemplateHistory.template_id == template_id,
                NotificationTemplateHistory.version == version,
            )
            .order_by(NotificationTemplateHistory.created_at.desc())
            .first()
        )

    @staticmethod
    def get_setting(db: Session, notification_type: str) -> Optional[NotificationSetting]:
        return db.get(NotificationSetting, notification_type)

    @staticmethod
    def list_settings(db: Session) -> list[NotificationSetting]:
        return db.query(NotificationSetting).order_by(NotificationSetting.notification_type).all()

    @staticmethod
    def is_channel_enabled(db: Session, notification_type: str, channel: str) -> bool:
        """Types without a settings row are treated as disabled"""
        setting = db.get(NotificationSetting, notification_type)
        if not setting:
            return False
        return bool(setting.email_enabled if channel == "email" else setting.sms_enabled)

    @staticmethod
    def create_log(db: Session, **log_data) -> NotificationLog:
        log = NotificationLog(**log_data)
        db.add(log)
        db.commit()
        db.refresh(log)
        return log

    @staticmethod
    def update_log(db: Session, log: NotificationLog, **updates) -> NotificationLog:
        # None is a meaningful value here (clearing retry_after), so every key is applied
        for key, value in updates.items():
            setattr(log, key, value)
        db.commit()
        db.refresh(log)
        return log

    @staticmethod
    def get_log(db: Session, log_id: str) -> Optional[NotificationLog]:
        return db.query(NotificationLog).filter(NotificationLog.id == log_id).first()

    @staticmethod
    def search_logs(
        db: Session,
        notification_type: Optional[str] = None,
        channel: Optional[str] = None,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[NotificationLog], int]:
        query = db.query(NotificationLog)
        if notification_type:
            query = query.filter(NotificationLog.type == notification_type)
        if channel:
            query = query.filter(NotificationLog.channel == channel)
        if status:
            query = query.filter(NotificationLog.status == status)
        if customer_id:
            query = query.filter(NotificationLog.customer_id == customer_id)
        if start:
            query = query.filter(NotificationLog.created_at >= start)
        if end:
            query = query.filter(NotificationLog.created_at <= end)

        total = query.count()
        logs = (
            query.order_by(NotificationLog.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return logs, total

    @staticmethod
    def find_logs_for_resend(
        db: Session,
        notification_type: Optional[str] = None,
        channel: Optional[str] = None,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> list[NotificationLog]:
        """Oldest first, test sends excluded"""
        query = db.query(NotificationLog).filter(NotificationLog.is_test.is_(False))
        if notification_type:
            query = query.filter(NotificationLog.type == notification_type)
        if channel:
            query = query.filter(NotificationLog.channel == channel)
        if status:
            query = query.filter(NotificationLog.status == status)
        if start:
            query = query.filter(NotificationLog.created_at >= start)
        if end:
            query = query.filter(NotificationLog.created_at <= end)
        return query.order_by(NotificationLog.created_at).limit(limit).all()

    @staticmethod
    def get_pending_retries(
        db: Session, now: datetime, max_retries: int, limit: int = 100
    ) -> list[NotificationLog]:
        return (
            db.query(NotificationLog)
            .filter(
                NotificationLog.status == "failed",
                NotificationLog.retry_after.isnot(None),
                NotificationLog.retry_after <= now,
                NotificationLog.retry_count < max_retries,
            )
            .order_by(NotificationLog.retry_after)
            .limit(limit)
            .all()
        )

    @staticmethod
    def has_recent_log(
        db: Session,
        notification_type: str,
        customer_id: str,
        since: datetime,
        channel: Optional[str] = None,
        status: Optional[str] = None,
    ) -> bool:
        """Used by scheduled jobs to avoid sending the same reminder twice"""
        query = db.query(NotificationLog.id).filter(
            NotificationLog.type == notification_type,
            NotificationLog.customer_id == customer_id,
            NotificationLog.created_at >= since,
        )
        if channel:
            query = query.filter(NotificationLog.channel == channel)
        if status:
            query = query.filter(NotificationLog.status == status)
        return query.first() is not None

    @staticmethod
    def get_stats(db: Session, since: datetime) -> dict:
        rows = (
            db.query(NotificationLog.channel, NotificationLog.status, func.count(NotificationLog.id))
            .filter(NotificationLog.created_at >= since, NotificationLog.is_test.is_(False))
            .group_by(NotificationLog.channel, NotificationLog.status)
            .all()
        )
        stats = {
            "email": {"sent": 0, "failed": 0, "pending": 0},
            "sms": {"sent": 0, "failed": 0, "pending": 0},
        }
        for channel, status, count in rows:
            stats.setdefault(channel, {"sent": 0, "failed": 0, "pending": 0})[status] = count
        return stats
