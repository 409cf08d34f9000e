"""
Best-effort email notifications; delivery never affects the caller
"""
import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Set

from jobconnect.utils.config import Settings
from jobconnect.utils.exceptions import NotificationFailure
from jobconnect.utils.logging_config import get_logger

logger = get_logger(__name__)


class EmailSender:
    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = "no-reply@jobconnect.local",
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailSender":
        return cls(settings.smtp_host, settings.smtp_port, settings.smtp_user, settings.smtp_password, settings.smtp_from)

    def send(self, to: str, subject: str, html_body: str) -> None:
        if not self.host:
            raise NotificationFailure("SMTP host not configured", recipient=to)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.user:
                    server.starttls()
                    server.login(self.user, self.password or "")
                server.sendmail(self.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationFailure(f"Email delivery failed: {e}", recipient=to, cause=e) from e


class Notifier:
    """Fire-and-forget wrapper around an EmailSender"""

    def __init__(self, sender: EmailSender):
        self.sender = sender
        self._pending: Set[asyncio.Task] = set()

    async def _deliver(self, to: str, subject: str, html_body: str) -> None:
        try:
            await asyncio.to_thread(self.sender.send, to, subject, html_body)
            logger.info(f"Notification sent to {to}: {subject}")
        except Exception as e:
            failure = e if isinstance(e, NotificationFailure) else NotificationFailure(str(e), recipient=to, cause=e)
            logger.warning(f"Notification to {to} failed: {failure.message}", extra={"error": failure.to_dict()})

    def notify(self, to: str, subject: str, html_body: str) -> None:
        """Schedule delivery on the running loop and return immediately"""
        task = asyncio.get_running_loop().create_task(self._deliver(to, subject, html_body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
