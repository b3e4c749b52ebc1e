"""
Notification service - the email/SMS send pipeline.

Every message passes the same gates in order: the per-type channel setting,
the customer's preferences, template lookup and rendering, then the provider.
Each attempt is written to notifications_log so failures can be retried by
the retry manager and inspected from the admin panel.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import NotificationLog
from ...shared.dates import utcnow
from .preferences import check_notification_allowed, get_notification_preferences
from .providers import get_email_provider, get_sms_provider
from .repository import NotificationRepository
from .retry_policy import DEFAULT_RETRY_CONFIG, calculate_retry_delay, classify_error
from .schemas import NotificationMessage
from .template_engine import SMS_SINGLE_SEGMENT_LENGTH, escape_html, render, render_with_metadata

logger = logging.getLogger(__name__)

BATCH_CHUNK_SIZE = 10
BATCH_CHUNK_DELAY_SECONDS = 0.1


def _escape_data(value: Any) -> Any:
    if isinstance(value, str):
        return escape_html(value)
    if isinstance(value, dict):
        return {key: _escape_data(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_escape_data(item) for item in value]
    return value


def _result(success: bool, log_id: Optional[str] = None, message_id: Optional[str] = None, error=None) -> dict:
    return {"success": success, "message_id": message_id, "error": error, "log_id": log_id}


class NotificationService:
    """Service layer for sending and retrying notifications"""

    def __init__(self, db: Session, sms_provider=None, email_provider=None, retry_config: Optional[dict] = None):
        self.db = db
        self.repo = NotificationRepository()
        self.sms_provider = sms_provider or get_sms_provider()
        self.email_provider = email_provider or get_email_provider()
        self.retry_config = {**DEFAULT_RETRY_CONFIG, **(retry_config or {})}

    async def send(self, message: NotificationMessage) -> dict:
        """Run one message through the pipeline; never raises on provider failure"""
        if not self.repo.is_channel_enabled(self.db, message.type, message.channel):
            logger.info(f"⏭️ {message.type} via {message.channel} is disabled, not sending")
            return _result(False, error=f"Notifications of type '{message.type}' are disabled for {message.channel}")

        if message.user_id:
            preferences = get_notification_preferences(self.db, message.user_id)
            decision = check_notification_allowed(preferences, message.type, message.channel)
            if not decision["allowed"]:
                log = self.repo.create_log(
                    self.db,
                    customer_id=message.user_id,
                    type=message.type,
                    channel=message.channel,
                    recipient=message.recipient,
                    status="failed",
                    error_message=decision["reason"],
                    template_data=message.template_data,
                    is_test=message.is_test,
                )
                logger.info(f"🔕 {message.type} blocked for user {message.user_id}: {decision['reason']}")
                return _result(False, log_id=log.id, error=decision["reason"])

        template_id = None
        if message.text is not None or message.html is not None:
            subject, html, text = message.subject, message.html, message.text
        else:
            template = self.repo.get_template(self.db, message.type, message.channel)
            if not template:
                error = (
                    f"Template not found for notification type '{message.type}' "
                    f"and channel '{message.channel}'"
                )
                logger.error(f"❌ {error}")
                return _result(False, error=error)

            template_id = template.id
            rendered = render_with_metadata(
                template.text_template or "",
                message.template_data,
                subject_template=template.subject_template,
            )
            subject, text = rendered["subject"], rendered["text"]
            # Customer-supplied values are escaped before landing in HTML
            html = (
                render(template.html_template, _escape_data(message.template_data))
                if template.html_template
                else None
            )

        if message.channel == "sms" and text and len(text) > SMS_SINGLE_SEGMENT_LENGTH:
            logger.warning(f"⚠️ SMS for {message.type} to {message.recipient} is {len(text)} characters")

        log = self.repo.create_log(
            self.db,
            customer_id=message.user_id,
            type=message.type,
            channel=message.channel,
            recipient=message.recipient,
            subject=subject,
            content=text,
            html_content=html,
            status="pending",
            template_id=template_id,
            template_data=message.template_data,
            is_test=message.is_test,
        )

        if message.channel == "email" and (not subject or not html):
            error = "Email requires subject and HTML content"
            self.repo.update_log(self.db, log, status="failed", error_message=error)
            logger.error(f"❌ {error} (log {log.id})")
            return _result(False, log_id=log.id, error=error)

        provider_result = await self._deliver(message.channel, message.recipient, subject, html, text)

        if provider_result["success"]:
            self.repo.update_log(
                self.db,
                log,
                status="sent",
                sent_at=utcnow(),
                message_id=provider_result["message_id"],
                error_message=None,
            )
            logger.info(f"✅ {message.type} sent via {message.channel} to {message.recipient}")
            return _result(True, log_id=log.id, message_id=provider_result["message_id"])

        self.handle_send_failure(log, provider_result, log.retry_count or 0)
        return _result(False, log_id=log.id, error=provider_result["error"])

    async def send_batch(self, messages: list[NotificationMessage]) -> list[dict]:
        """Send in chunks of ten, pausing between chunks to stay under provider rate limits"""
        results = []
        for start in range(0, len(messages), BATCH_CHUNK_SIZE):
            chunk = messages[start : start + BATCH_CHUNK_SIZE]
            for message in chunk:
                # One session per service, so sends inside a chunk stay sequential
                try:
                    results.append(await self.send(message))
                except Exception as e:
                    logger.error(f"❌ Batch send failed for {message.recipient}: {e}")
                    results.append(_result(False, error=str(e)))
            if start + BATCH_CHUNK_SIZE < len(messages):
                await asyncio.sleep(BATCH_CHUNK_DELAY_SECONDS)
        return results

    def handle_send_failure(self, log: NotificationLog, error: Any, current_retry_count: int) -> NotificationLog:
        """Mark a log as failed and schedule a retry when the error is worth retrying"""
        status_code = error.get("status_code") if isinstance(error, dict) else None
        classified = classify_error(
            {"message": error.get("error") or "Unknown error"} if isinstance(error, dict) else error,
            status_code,
        )
        max_retries = self.retry_config["max_retries"]

        if classified["retryable"] and current_retry_count < max_retries:
            delay = calculate_retry_delay(current_retry_count, self.retry_config)
            logger.warning(
                f"⚠️ Send failed for log {log.id} ({classified['type'].value}), retry in {delay}s"
            )
            return self.repo.update_log(
                self.db,
                log,
                status="failed",
                error_message=f"{classified['message']} ({classified['type'].value})",
                retry_after=utcnow() + timedelta(seconds=delay),
                retry_count=current_retry_count + 1,
            )

        reason = "Max retries exceeded" if current_retry_count >= max_retries else "Non-retryable error"
        logger.error(f"❌ Send failed for log {log.id}: {classified['message']} ({reason})")
        return self.repo.update_log(
            self.db,
            log,
            status="failed",
            error_message=f"{classified['message']} ({reason})",
            retry_after=None,
        )

    async def redeliver(self, log: NotificationLog) -> dict:
        """Push the stored content of an existing log row to the provider again"""
        return await self._deliver(log.channel, log.recipient, log.subject, log.html_content, log.content)

    async def resend(self, log_id: str) -> dict:
        """Admin resend: a fresh attempt with the same content, logged as a new row"""
        log = self.repo.get_log(self.db, log_id)
        if not log:
            return _result(False, error="Notification not found")

        message = NotificationMessage(
            type=log.type,
            channel=log.channel,
            recipient=log.recipient,
            user_id=log.customer_id,
            template_data=log.template_data or {},
            subject=log.subject,
            html=log.html_content,
            text=log.content if log.content is not None else "",
        )
        return await self.send(message)

    async def bulk_resend(self, log_ids: list[str]) -> dict:
        """Resend each log in turn; one failure does not stop the rest"""
        summary = {"success": True, "total_resent": 0, "total_failed": 0, "errors": []}
        for log_id in log_ids:
            try:
                result = await self.resend(log_id)
            except Exception as e:
                logger.error(f"❌ Bulk resend crashed on log {log_id}: {e}")
                result = _result(False, error=str(e))
            if result["success"]:
                summary["total_resent"] += 1
            else:
                summary["total_failed"] += 1
                summary["errors"].append(f"{log_id}: {result['error']}")

        summary["success"] = summary["total_failed"] == 0
        logger.info(f"📊 Bulk resend: {summary['total_resent']} resent, {summary['total_failed']} failed")
        return summary

    async def _deliver(
        self, channel: str, recipient: str, subject: Optional[str], html: Optional[str], text: Optional[str]
    ) -> dict:
        if channel == "sms":
            return await self.sms_provider.send_sms(recipient, text or "")
        return await self.email_provider.send_email(recipient, subject or "", html or "", text)
