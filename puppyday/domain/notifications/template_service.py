"""
Template administration - edits, version history, rollback and test sends.

Before a template is overwritten its current content is copied into
notification_template_history, so every earlier version can be listed and
restored. Rolling back is itself a change: it snapshots the current version
and moves the template forward to a new version number.
"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import NotificationTemplate, NotificationTemplateHistory, User
from ...shared.validators import validate_email, validate_us_phone
from .repository import NotificationRepository
from .schemas import NotificationMessage, NotificationTemplateUpdate, TemplateRollbackRequest, TemplateTestRequest
from .service import NotificationService
from .template_engine import render_with_metadata, validate_template

logger = logging.getLogger(__name__)

TEST_PREFIX = "[TEST]"
RESTORED_FIELDS = ("name", "description", "subject_template", "html_template", "text_template", "variables")


def _body_field(channel: str) -> str:
    # Required variables are checked against the main body of the template
    return "html_template" if channel == "email" else "text_template"


class TemplateService:
    """Service layer for notification template administration"""

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.repo = NotificationRepository()
        self.notifications = notifications

    def get_template(self, template_id: str) -> NotificationTemplate:
        template = self.repo.get_template_by_id(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        return template

    def update_template(self, template_id: str, data: NotificationTemplateUpdate, user: User) -> NotificationTemplate:
        """Save an edit; the previous content goes to history and the version is bumped"""
        template = self.get_template(template_id)

        updates = data.model_dump(exclude_unset=True, exclude={"change_reason"})
        if "variables" in updates and updates["variables"] is not None:
            updates["variables"] = [v.model_dump() for v in data.variables]

        declared = updates.get("variables", template.variables or [])
        body_field = _body_field(template.channel)
        body = updates.get(body_field, getattr(template, body_field))
        if body:
            check = validate_template(body, declared)
            if not check["valid"]:
                raise HTTPException(status_code=400, detail="; ".join(check["errors"]))

        self.repo.add_template_history(self.db, template, user.id, data.change_reason)
        for key, value in updates.items():
            setattr(template, key, value)
        template.version = (template.version or 1) + 1
        self.db.commit()
        self.db.refresh(template)

        logger.info(f"✅ Template {template.type}/{template.channel} updated to v{template.version} by {user.id}")
        return template

    def get_history(self, template_id: str) -> list[NotificationTemplateHistory]:
        self.get_template(template_id)
        return self.repo.get_template_history(self.db, template_id)

    def rollback(self, template_id: str, data: TemplateRollbackRequest, user: User) -> NotificationTemplate:
        template = self.get_template(template_id)
        previous = self.repo.get_template_version(self.db, template_id, data.version)
        if not previous:
            raise HTTPException(status_code=404, detail=f"Version {data.version} not found")

        self.repo.add_template_history(
            self.db, template, user.id, f"Rolled back to version {data.version}: {data.reason}"
        )
        for field in RESTORED_FIELDS:
            value = getattr(previous, field)
            setattr(template, field, list(value or []) if field == "variables" else value)
        template.version = (template.version or 1) + 1
        self.db.commit()
        self.db.refresh(template)

        logger.info(
            f"🔄 Template {template.type}/{template.channel} rolled back to v{data.version} "
            f"(now v{template.version}) by {user.id}"
        )
        return template

    async def send_test(self, template_id: str, data: TemplateTestRequest) -> dict:
        """Render with sample data and send to the given recipient, marked as a test"""
        template = self.get_template(template_id)

        try:
            if template.channel == "email":
                if not data.recipient_email:
                    raise HTTPException(status_code=400, detail="recipient_email is required for email templates")
                recipient = validate_email(data.recipient_email)
            else:
                if not data.recipient_phone:
                    raise HTTPException(status_code=400, detail="recipient_phone is required for SMS templates")
                recipient = validate_us_phone(data.recipient_phone)
        except ValueError:
            kind = "email address" if template.channel == "email" else "phone number"
            raise HTTPException(status_code=400, detail=f"Invalid {kind}")

        rendered = render_with_metadata(
            template.text_template or "",
            data.sample_data,
            subject_template=template.subject_template,
            html_template=template.html_template,
        )
        if template.channel == "email":
            message = NotificationMessage(
                type=template.type,
                channel="email",
                recipient=recipient,
                subject=f"{TEST_PREFIX} {rendered['subject'] or template.name}",
                html=rendered["html"],
                text=rendered["text"],
                is_test=True,
            )
        else:
            message = NotificationMessage(
                type=template.type,
                channel="sms",
                recipient=recipient,
                text=f"{TEST_PREFIX} {rendered['text']}",
                is_test=True,
            )

        notifications = self.notifications or NotificationService(self.db)
        result = await notifications.send(message)
        if not result["success"]:
            logger.error(f"❌ Test send of template {template.id} failed: {result['error']}")
            raise HTTPException(status_code=500, detail=f"Failed to send test notification: {result['error']}")

        logger.info(f"📧 Test {template.channel} for {template.type} sent to {recipient}")
        return {"success": True, "message_id": result["message_id"], "log_id": result["log_id"]}
