"""Retry failed notifications whose retry_after has passed"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...shared.dates import utcnow
from .repository import NotificationRepository
from .retry_policy import calculate_retry_delay, classify_error, has_exceeded_max_retries
from .service import NotificationService

logger = logging.getLogger(__name__)

RETRY_BATCH_SIZE = 100


async def process_retries(
    db: Session, service: Optional[NotificationService] = None, now: Optional[datetime] = None
) -> dict:
    """
    Re-send one batch of due retries.

    Returns:
        {"processed", "succeeded", "failed", "errors": [{"log_id", "error"}]}
    """
    service = service or NotificationService(db)
    repo = NotificationRepository()
    now = now or utcnow()
    max_retries = service.retry_config["max_retries"]

    logs = repo.get_pending_retries(db, now, max_retries, limit=RETRY_BATCH_SIZE)
    summary = {"processed": 0, "succeeded": 0, "failed": 0, "errors": []}
    if not logs:
        return summary

    logger.info(f"🔄 Retrying {len(logs)} failed notifications")

    for log in logs:
        summary["processed"] += 1
        try:
            result = await service.redeliver(log)
        except Exception as e:
            logger.error(f"❌ Retry crashed for log {log.id}: {e}")
            result = {"success": False, "error": str(e), "status_code": None, "message_id": None}

        if result["success"]:
            repo.update_log(
                db,
                log,
                status="sent",
                sent_at=utcnow(),
                message_id=result["message_id"],
                error_message=None,
                retry_after=None,
            )
            summary["succeeded"] += 1
            logger.info(f"✅ Retry succeeded for log {log.id}")
            continue

        summary["failed"] += 1
        summary["errors"].append({"log_id": log.id, "error": result["error"]})

        new_count = (log.retry_count or 0) + 1
        classified = classify_error({"message": result["error"] or "Unknown error"}, result.get("status_code"))

        if classified["retryable"] and not has_exceeded_max_retries(new_count, max_retries):
            delay = calculate_retry_delay(new_count, service.retry_config)
            repo.update_log(
                db,
                log,
                status="failed",
                retry_count=new_count,
                retry_after=now + timedelta(seconds=delay),
                error_message=f"{classified['message']} ({classified['type'].value})",
            )
            logger.warning(f"⚠️ Retry {new_count} failed for log {log.id}, next attempt in {delay}s")
        else:
            reason = "Max retries exceeded" if has_exceeded_max_retries(new_count, max_retries) else "Non-retryable error"
            repo.update_log(
                db,
                log,
                status="failed",
                retry_count=new_count,
                retry_after=None,
                error_message=f"{classified['message']} ({reason})",
            )
            logger.error(f"❌ Giving up on log {log.id}: {reason}")

    logger.info(
        f"📊 Retry batch done: {summary['succeeded']} succeeded, {summary['failed']} failed"
    )
    return summary
