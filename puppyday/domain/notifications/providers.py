"""
Email and SMS provider wrappers.
Live providers talk to Resend and the Twilio REST API; mock providers record
messages in memory for local development and tests. Providers never raise on
a failed send, they return a result dict the pipeline can classify.
"""

import logging
import uuid
from typing import Optional

import httpx
import resend

from ...config import (
    EMAIL_FROM_ADDRESS,
    NOTIFICATION_PROVIDER,
    RESEND_API_KEY,
    TWILIO_ACCOUNT_SID,
    TWILIO_AUTH_TOKEN,
    TWILIO_PHONE_NUMBER,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def send_result(
    success: bool,
    message_id: Optional[str] = None,
    error: Optional[str] = None,
    status_code: Optional[int] = None,
) -> dict:
    return {"success": success, "message_id": message_id, "error": error, "status_code": status_code}


class TwilioSMSProvider:
    """Send SMS via Twilio"""

    def __init__(
        self,
        account_sid: Optional[str] = TWILIO_ACCOUNT_SID,
        auth_token: Optional[str] = TWILIO_AUTH_TOKEN,
        from_number: Optional[str] = TWILIO_PHONE_NUMBER,
        timeout: float = 10.0,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    async def send_sms(self, to_phone: str, body: str) -> dict:
        if not self.account_sid or not self.auth_token or not self.from_number:
            logger.error("❌ Twilio credentials are not configured")
            return send_result(False, error="Twilio is not configured")

        if not to_phone or not to_phone.startswith("+"):
            logger.warning(f"Phone number not in E.164 format: {to_phone}")
            return send_result(False, error="Phone number must be in E.164 format", status_code=400)

        try:
            logger.info(f"🚀 Sending SMS to Twilio API for {to_phone}")
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    TWILIO_MESSAGES_URL.format(sid=self.account_sid),
                    auth=(self.account_sid, self.auth_token),
                    data={"To": to_phone, "From": self.from_number, "Body": body},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Twilio API request failed: {e}")
            return send_result(False, error=f"Network error: {e}")

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in (200, 201):
            message_sid = response.json().get("sid")
            logger.info(f"✅ SMS sent to {to_phone} (SID: {message_sid})")
            return send_result(True, message_id=message_sid, status_code=response.status_code)

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")
        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        return send_result(
            False,
            error=f"[{error_code}] {error_message}" if error_code else error_message,
            status_code=response.status_code,
        )


class ResendEmailProvider:
    """Send email via Resend"""

    def __init__(self, from_address: str = EMAIL_FROM_ADDRESS):
        self.from_address = from_address

    async def send_email(self, to_email: str, subject: str, html: str, text: Optional[str] = None) -> dict:
        if not resend.api_key:
            logger.error("❌ RESEND_API_KEY is not configured")
            return send_result(False, error="Resend is not configured")

        email_data = {
            "from": self.from_address,
            "to": [to_email],
            "subject": subject,
            "html": html,
        }
        if text:
            email_data["text"] = text

        try:
            logger.info(f"📧 Sending email '{subject}' to {to_email}")
            response = resend.Emails.send(email_data)
        except Exception as e:
            # resend raises its own error hierarchy plus transport errors
            status_code = getattr(e, "code", None)
            logger.error(f"❌ Resend send failed for {to_email}: {e}")
            return send_result(
                False, error=str(e), status_code=status_code if isinstance(status_code, int) else None
            )

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info(f"✅ Email sent to {to_email} (id: {message_id})")
        return send_result(True, message_id=message_id)


class MockSMSProvider:
    """Records SMS instead of sending; set fail_with to simulate provider errors"""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Optional[str] = None
        self.fail_status_code: Optional[int] = None

    async def send_sms(self, to_phone: str, body: str) -> dict:
        if self.fail_with:
            return send_result(False, error=self.fail_with, status_code=self.fail_status_code)
        message_id = f"SM{uuid.uuid4().hex}"
        self.sent.append({"to": to_phone, "body": body, "message_id": message_id})
        logger.info(f"📱 [mock] SMS to {to_phone}: {body}")
        return send_result(True, message_id=message_id)


class MockEmailProvider:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Optional[str] = None
        self.fail_status_code: Optional[int] = None

    async def send_email(self, to_email: str, subject: str, html: str, text: Optional[str] = None) -> dict:
        if self.fail_with:
            return send_result(False, error=self.fail_with, status_code=self.fail_status_code)
        message_id = f"mock-{uuid.uuid4()}"
        self.sent.append(
            {"to": to_email, "subject": subject, "html": html, "text": text, "message_id": message_id}
        )
        logger.info(f"📧 [mock] Email to {to_email}: {subject}")
        return send_result(True, message_id=message_id)


_sms_provider = None
_email_provider = None


def get_sms_provider():
    global _sms_provider
    if _sms_provider is None:
        _sms_provider = TwilioSMSProvider() if NOTIFICATION_PROVIDER == "live" else MockSMSProvider()
        logger.info(f"📱 SMS provider: {_sms_provider.__class__.__name__}")
    return _sms_provider


def get_email_provider():
    global _email_provider
    if _email_provider is None:
        _email_provider = ResendEmailProvider() if NOTIFICATION_PROVIDER == "live" else MockEmailProvider()
        logger.info(f"📧 Email provider: {_email_provider.__class__.__name__}")
    return _email_provider


def set_providers(sms_provider=None, email_provider=None) -> None:
    """Swap providers at runtime (worker bootstrap, tests)"""
    global _sms_provider, _email_provider
    _sms_provider = sms_provider
    _email_provider = email_provider
