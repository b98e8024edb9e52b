"""
Contact mail delivery.

Builds the contact email from a `ContactIntent`, attaches a previously
uploaded document when it still exists, and delivers it over SMTP. Without
SMTP credentials a disposable Ethereal account is created instead and the
response carries a preview URL.
"""

import html
import mimetypes
import re
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid, parseaddr
from pathlib import Path

import httpx
import structlog
from fastapi.concurrency import run_in_threadpool

from paygate.config import Settings
from paygate.exceptions import UpstreamError
from paygate.models.capability_token import ContactIntent
from paygate.services.upload_service import resolve_upload

logger = structlog.get_logger()

ETHEREAL_WEB_URL = "https://ethereal.email"
DEFAULT_SUBJECT = "Website Contact"
MISSING = "-"

_RESPONSE_PROPS = re.compile(r"\[([^\]]+)\]\s*$")
_PROP = re.compile(r"\b([A-Z0-9]+)=(\S+)")


@dataclass(frozen=True, slots=True)
class SmtpTransport:
    host: str
    port: int
    secure: bool
    user: str
    password: str
    timeout: float = 30.0
    # Set for Ethereal test accounts only
    preview_base_url: str | None = None


@dataclass(frozen=True, slots=True)
class MailReceipt:
    message_id: str
    preview_url: str | None = None


def build_contact_message(intent: ContactIntent, *, sender: str, recipient: str) -> EmailMessage:
    """Build the plain-text + HTML contact email (without attachments)."""
    name = intent.name or MISSING
    email = intent.email or MISSING
    subject = intent.subject or MISSING
    body = intent.message or ""

    text = f"Name: {name}\nEmail: {email}\nSubject: {subject}\n\n{body}"
    body_html = (
        f"<p><strong>Name:</strong> {html.escape(name)}</p>"
        f"<p><strong>Email:</strong> {html.escape(email)}</p>"
        f"<p><strong>Subject:</strong> {html.escape(subject)}</p>"
        f"<hr><p>{html.escape(body).replace(chr(10), '<br>')}</p>"
    )

    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = recipient
    if intent.email:
        msg["Reply-To"] = intent.email
    msg["Subject"] = intent.subject or DEFAULT_SUBJECT
    msg["Message-ID"] = make_msgid(domain=parseaddr(sender)[1].rpartition("@")[2] or None)
    msg.set_content(text)
    msg.add_alternative(body_html, subtype="html")
    return msg


def attach_file(msg: EmailMessage, path: Path, filename: str) -> None:
    content_type, _ = mimetypes.guess_type(filename)
    maintype, _, subtype = (content_type or "application/octet-stream").partition("/")
    msg.add_attachment(path.read_bytes(), maintype=maintype, subtype=subtype, filename=filename)


def preview_url_from_response(response: str, base_url: str | None) -> str | None:
    """
    Extract the Ethereal preview link from an SMTP DATA reply.

    Ethereal answers e.g. "250 Accepted [STATUS=new MSGID=abc...]".
    """
    if not base_url:
        return None
    match = _RESPONSE_PROPS.search(response)
    if not match:
        return None
    props = dict(_PROP.findall(match.group(1)))
    if "STATUS" in props and "MSGID" in props:
        return f"{base_url.rstrip('/')}/message/{props['MSGID']}"
    return None


def deliver(transport: SmtpTransport, msg: EmailMessage) -> str:
    """Send a message over SMTP. Returns the server's reply to DATA."""
    smtp_class = smtplib.SMTP_SSL if transport.secure else smtplib.SMTP
    envelope_from = parseaddr(msg["From"])[1]
    recipients = [parseaddr(msg["To"])[1]]

    with smtp_class(transport.host, transport.port, timeout=transport.timeout) as smtp:
        smtp.ehlo()
        if not transport.secure and smtp.has_extn("starttls"):
            smtp.starttls()
            smtp.ehlo()
        smtp.login(transport.user, transport.password)

        code, reply = smtp.mail(envelope_from)
        if code != 250:
            raise smtplib.SMTPSenderRefused(code, reply, envelope_from)
        for rcpt in recipients:
            code, reply = smtp.rcpt(rcpt)
            if code not in (250, 251):
                raise smtplib.SMTPRecipientsRefused({rcpt: (code, reply)})
        code, reply = smtp.data(msg.as_bytes())
        if code != 250:
            raise smtplib.SMTPDataError(code, reply)

    return reply.decode(errors="replace") if isinstance(reply, bytes) else str(reply)


class ContactMailer:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._test_transport: SmtpTransport | None = None

    async def _create_test_transport(self) -> SmtpTransport:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                self._settings.ethereal_api_url,
                json={"requestor": "paygate", "version": "0.1.0"},
                timeout=10.0,
            )
            response.raise_for_status()
            account = response.json()

        if account.get("status") != "success":
            raise UpstreamError(
                "Failed to send email",
                diagnostic=f"Ethereal account creation failed: {account.get('error')}",
            )

        logger.warning("smtp_not_configured_using_test_account", user=account["user"])
        smtp = account["smtp"]
        return SmtpTransport(
            host=smtp["host"],
            port=int(smtp["port"]),
            secure=bool(smtp["secure"]),
            user=account["user"],
            password=account["pass"],
            timeout=self._settings.smtp_timeout_seconds,
            preview_base_url=account.get("web") or ETHEREAL_WEB_URL,
        )

    async def transport(self) -> SmtpTransport:
        s = self._settings
        if s.smtp_configured:
            return SmtpTransport(
                host=s.smtp_host,
                port=s.smtp_port,
                secure=s.smtp_secure,
                user=s.smtp_user,
                password=s.smtp_pass,
                timeout=s.smtp_timeout_seconds,
            )
        if self._test_transport is None:
            self._test_transport = await self._create_test_transport()
        return self._test_transport

    def _collect_attachment(self, msg: EmailMessage, intent: ContactIntent) -> list[Path]:
        if not intent.uploaded_filename:
            return []
        path = resolve_upload(self._settings, intent.uploaded_filename)
        if path is None or not path.is_file():
            logger.warning("attachment_missing", filename=intent.uploaded_filename)
            return []
        try:
            attach_file(msg, path, intent.uploaded_original_name or path.name)
        except OSError as e:
            logger.warning(
                "attachment_missing", filename=intent.uploaded_filename, error=str(e)
            )
            return []
        return [path]

    def _delete_attachments(self, paths: list[Path]) -> None:
        for path in paths:
            try:
                path.unlink()
                logger.info("attachment_deleted", filename=path.name)
            except OSError as e:
                logger.warning("attachment_delete_failed", filename=path.name, error=str(e))

    async def send_contact(self, intent: ContactIntent) -> MailReceipt:
        """
        Send a contact message.

        Raises UpstreamError on transport failure; attachments are kept on
        disk in that case.
        """
        msg = build_contact_message(
            intent, sender=self._settings.mail_from, recipient=self._settings.mail_to
        )
        attached = self._collect_attachment(msg, intent)

        try:
            transport = await self.transport()
            reply = await run_in_threadpool(deliver, transport, msg)
        except (smtplib.SMTPException, OSError, httpx.HTTPError) as e:
            logger.error("mail_send_failed", error=str(e), attachments=len(attached))
            raise UpstreamError("Failed to send email", diagnostic=str(e)) from e

        receipt = MailReceipt(
            message_id=msg["Message-ID"],
            preview_url=preview_url_from_response(reply, transport.preview_base_url),
        )
        logger.info("mail_sent", message_id=receipt.message_id, attachments=len(attached))

        if attached and self._settings.mail_delete_uploads:
            self._delete_attachments(attached)
        return receipt
