import asyncio
import base64
import html
import logging
import os
import re
import threading
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

import client_settings as cs
from models import coerce_uploads

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 3
SUBMISSION_TIMEZONE = ZoneInfo("Asia/Kolkata")

ADMIN_LABEL = "Admin Email"
APPLICANT_LABEL = "Student Confirmation"


class NotificationError(RuntimeError):
    """Base class for notification failures."""


class ConfigurationError(NotificationError):
    """A required credential or address is not configured."""


class ProviderVerificationError(NotificationError):
    """The Brevo account check failed."""


class EmailDeliveryError(NotificationError):
    def __init__(self, label, message):
        super().__init__(message)
        self.label = label


@dataclass(frozen=True)
class MailSettings:
    api_key: Optional[str]
    from_email: Optional[str]
    admin_email: Optional[str]
    from_name: str = cs.INSTITUTE_NAME

    @classmethod
    def from_env(cls):
        return cls(
            api_key=os.getenv("BREVO_API_KEY") or None,
            from_email=os.getenv("MAIL_FROM") or None,
            admin_email=os.getenv("ADMIN_EMAIL") or None,
            from_name=os.getenv("MAIL_FROM_NAME") or cs.INSTITUTE_NAME,
        )

    def require_api_key(self):
        if not self.api_key:
            raise ConfigurationError("BREVO_API_KEY missing in environment")
        return self.api_key

    def require_addresses(self):
        if not self.from_email or not self.admin_email:
            raise ConfigurationError("MAIL_FROM or ADMIN_EMAIL missing in environment")


class BrevoClient:
    """Brevo transactional API with a once-per-client account check.

    ``verify`` is single-flight: concurrent first callers block on the lock
    while one of them talks to the provider, and only success is cached.
    """

    def __init__(self, settings, email_api=None, account_api=None):
        api_key = settings.require_api_key()
        if email_api is None or account_api is None:
            configuration = sib_api_v3_sdk.Configuration()
            configuration.api_key["api-key"] = api_key
            api_client = sib_api_v3_sdk.ApiClient(configuration)
            email_api = email_api or sib_api_v3_sdk.TransactionalEmailsApi(api_client)
            account_api = account_api or sib_api_v3_sdk.AccountApi(api_client)

        self.settings = settings
        self.email_api = email_api
        self.account_api = account_api
        self._verified = False
        self._verify_lock = threading.Lock()

    @property
    def verified(self):
        return self._verified

    def verify(self):
        if self._verified:
            return
        with self._verify_lock:
            if self._verified:
                return
            logger.info("Verifying Brevo API key...")
            try:
                self.account_api.get_account()
            except Exception as exc:
                logger.error("Brevo API verification failed: %s", _describe(exc))
                raise ProviderVerificationError(f"Brevo API Error: {_describe(exc)}") from exc
            self._verified = True
            logger.info("Brevo API key verified successfully")

    def send(self, message):
        result = self.email_api.send_transac_email(message)
        return getattr(result, "message_id", None)


_client: Optional[BrevoClient] = None
_client_lock = threading.Lock()


def get_brevo_client(settings=None):
    """Return the process-wide client, creating it on first use.

    Passing settings that differ from the cached client's replaces it.
    """
    global _client
    with _client_lock:
        if _client is None or (settings is not None and settings != _client.settings):
            settings = settings or MailSettings.from_env()
            settings.require_api_key()
            logger.info("Initializing Brevo API client...")
            _client = BrevoClient(settings)
        return _client


def reset_brevo_client():
    global _client
    with _client_lock:
        _client = None


def _describe(exc):
    if isinstance(exc, ApiException):
        return (exc.reason or exc.body or str(exc)).strip()
    return str(exc)


def safe_file_stem(full_name):
    """``"Jôhn  Doe!!"`` -> ``"John-Doe"``; ``Student`` when nothing is left."""
    text = unicodedata.normalize("NFKD", (full_name or "").strip())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"[^a-zA-Z0-9-]", "", text)
    return text or "Student"


def _encode(path):
    return base64.b64encode(Path(path).read_bytes()).decode("ascii")


def build_attachments(form_data, pdf_path, uploaded_files):
    stem = safe_file_stem(form_data.get("fullName"))
    attachments = []

    if pdf_path and Path(pdf_path).is_file():
        attachments.append(
            sib_api_v3_sdk.SendSmtpEmailAttachment(name=f"{stem}-Admission-Form.pdf", content=_encode(pdf_path))
        )

    documents = [upload for upload in coerce_uploads(uploaded_files) if upload.is_pdf and upload.exists()]
    for index, upload in enumerate(documents, start=1):
        if len(documents) == 1:
            name = f"{stem}-Uploaded-Documents.pdf"
        else:
            name = f"{stem}-Uploaded-Document-{index}.pdf"
        attachments.append(sib_api_v3_sdk.SendSmtpEmailAttachment(name=name, content=_encode(upload.path)))

    return attachments


def submission_timestamp(moment=None):
    """Format like en-IN locale strings: ``19/10/2026, 4:57:03 pm``."""
    moment = (moment or datetime.now(SUBMISSION_TIMEZONE)).astimezone(SUBMISSION_TIMEZONE)
    hour = moment.hour % 12 or 12
    meridiem = "am" if moment.hour < 12 else "pm"
    return f"{moment:%d/%m/%Y}, {hour}:{moment:%M:%S} {meridiem}"


def _field(form_data, name, default=""):
    return html.escape(str(form_data.get(name) or default))


def build_admin_email(form_data, attachments, settings, submitted_at):
    row = '<td style="padding: 8px; border-bottom: 1px solid #d1d5db;">'
    rows = [
        ("Full Name", _field(form_data, "fullName")),
        ("Email", _field(form_data, "email")),
        ("Mobile", _field(form_data, "mobile")),
        ("Course", _field(form_data, "course")),
        ("Mode", _field(form_data, "modeOfClass", "N/A")),
    ]
    table = "".join(f"<tr>{row}<strong>{label}:</strong></td>{row}{value}</td></tr>" for label, value in rows)

    html_content = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <h2 style="color: #2563eb; border-bottom: 2px solid #2563eb; padding-bottom: 10px;">
        New Admission Application Received
      </h2>
      <div style="background-color: #f3f4f6; padding: 15px; border-radius: 8px; margin: 20px 0;">
        <h3 style="color: #1f2937; margin-top: 0;">Student Information</h3>
        <table style="width: 100%; border-collapse: collapse;">
          {table}
          <tr>
            <td style="padding: 8px;"><strong>Submitted:</strong></td>
            <td style="padding: 8px;">{submitted_at}</td>
          </tr>
        </table>
      </div>
      <p style="color: #059669; font-weight: bold; margin: 20px 0;">
        📎 Admission Form and Documents are attached to this email.
      </p>
      <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 30px 0;">
      <p style="color: #6b7280; font-size: 12px;">
        This is an automated notification from the {html.escape(settings.from_name)} admission system.
      </p>
    </div>
    """

    return sib_api_v3_sdk.SendSmtpEmail(
        sender={"name": settings.from_name, "email": settings.from_email},
        to=[{"email": settings.admin_email}],
        subject=f"New Admission – {form_data.get('fullName') or 'Student'}",
        html_content=html_content,
        attachment=attachments or None,
    )


def build_applicant_email(form_data, settings, submitted_at):
    name = _field(form_data, "fullName")
    course = _field(form_data, "course")
    institute = html.escape(settings.from_name)

    html_content = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <div style="text-align: center; margin-bottom: 30px;">
        <h1 style="color: #2563eb; margin: 0;">{institute}</h1>
        <p style="color: #6b7280; margin: 5px 0;">{html.escape(cs.TAGLINE)}</p>
      </div>
      <div style="background: linear-gradient(135deg, #2563eb 0%, #1d4ed8 100%); color: white; padding: 20px; border-radius: 8px; margin-bottom: 30px;">
        <h2 style="margin: 0 0 10px 0;">Application Received Successfully! ✓</h2>
        <p style="margin: 0; opacity: 0.9;">Thank you for choosing {institute}</p>
      </div>
      <p style="font-size: 16px; line-height: 1.6;">Dear <strong>{name}</strong>,</p>
      <p style="font-size: 15px; line-height: 1.6; color: #374151;">
        We are pleased to confirm that your admission application for <strong>{course}</strong>
        has been successfully received and is now being processed by our admissions team.
      </p>
      <div style="background-color: #fef3c7; border-left: 4px solid #f59e0b; padding: 15px; margin: 20px 0; border-radius: 4px;">
        <p style="margin: 0; color: #92400e;">
          <strong>⏳ Next Steps:</strong><br>
          Our admissions team will review your application and contact you within 2-3 business days
          regarding the next steps in the admission process.
        </p>
      </div>
      <div style="background-color: #f3f4f6; padding: 15px; border-radius: 8px; margin: 20px 0;">
        <h3 style="color: #1f2937; margin-top: 0;">Application Details</h3>
        <p style="margin: 5px 0;"><strong>Course:</strong> {course}</p>
        <p style="margin: 5px 0;"><strong>Mode:</strong> {_field(form_data, "modeOfClass", "N/A")}</p>
        <p style="margin: 5px 0;"><strong>Submitted:</strong> {submitted_at}</p>
      </div>
      <p style="font-size: 14px; line-height: 1.6; color: #6b7280;">
        If you have any questions in the meantime, please don't hesitate to reach out to us.
      </p>
      <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 30px 0;">
      <div style="text-align: center; color: #6b7280; font-size: 14px;">
        <p style="margin: 5px 0;"><strong>Best Regards,</strong></p>
        <p style="margin: 5px 0;"><strong>{institute} Admissions Team</strong></p>
        <p style="margin: 5px 0;">📧 {html.escape(settings.admin_email)}</p>
        <p style="margin: 5px 0;">📞 {cs.OFFICE_PHONE}</p>
        <p style="margin: 15px 0 5px 0; font-size: 12px; color: #9ca3af;">
          This is an automated confirmation email. Please do not reply to this message.
        </p>
      </div>
    </div>
    """

    recipient = {"email": form_data.get("email")}
    if form_data.get("fullName"):
        recipient["name"] = form_data["fullName"]

    return sib_api_v3_sdk.SendSmtpEmail(
        sender={"name": settings.from_name, "email": settings.from_email},
        to=[recipient],
        subject=f"Admission Application Received – {settings.from_name}",
        html_content=html_content,
    )


async def send_with_retry(client, message, label, attempts=MAX_ATTEMPTS, sleep=asyncio.sleep):
    for attempt in range(1, attempts + 1):
        try:
            logger.info("Sending %s (Attempt %d/%d)...", label, attempt, attempts)
            message_id = await asyncio.to_thread(client.send, message)
        except Exception as exc:
            logger.error("%s attempt %d failed: %s", label, attempt, _describe(exc))
            if attempt == attempts:
                raise EmailDeliveryError(
                    label, f"{label} failed after {attempts} attempts: {_describe(exc)}"
                ) from exc
            wait = attempt * BACKOFF_SECONDS
            logger.info("Waiting %ss before retrying %s", wait, label)
            await sleep(wait)
        else:
            logger.info("%s sent successfully (message id %s)", label, message_id)
            return message_id


async def send_admission_emails(form_data, pdf_path, uploaded_files=(), *, client=None, settings=None,
                                sleep=asyncio.sleep):
    """Email the admission form to the office and a confirmation to the applicant.

    Both sends run concurrently with their own retries. Returns the two
    message ids ``(admin, applicant)``; raises if either email could not be
    delivered.
    """
    if client is None:
        client = get_brevo_client(settings)
    settings = settings or client.settings
    settings.require_api_key()
    settings.require_addresses()

    await asyncio.to_thread(client.verify)

    submitted_at = submission_timestamp()
    attachments = build_attachments(form_data, pdf_path, uploaded_files)
    admin_email = build_admin_email(form_data, attachments, settings, submitted_at)
    applicant_email = build_applicant_email(form_data, settings, submitted_at)

    logger.info("Sending emails via Brevo API...")
    results = await asyncio.gather(
        send_with_retry(client, admin_email, ADMIN_LABEL, sleep=sleep),
        send_with_retry(client, applicant_email, APPLICANT_LABEL, sleep=sleep),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            logger.error("Email sending failed: %s", result)
            raise result

    logger.info("All emails sent successfully via Brevo API")
    return tuple(results)


def notify(form_data, pdf_path, uploaded_files=(), **kwargs):
    return asyncio.run(send_admission_emails(form_data, pdf_path, uploaded_files, **kwargs))
