import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from app.core.config import settings
from app.models.user import User

logger = logging.getLogger(__name__)


class MailService:
    """
    Sends account emails over SMTP.

    Sending is best-effort: failures are logged and never propagate, so a
    mail outage cannot undo a user that was already committed.
    """

    def __init__(self, enabled: bool | None = None):
        self.enabled = settings.MAIL_ENABLED if enabled is None else enabled

    def activation_link(self, user: User) -> str:
        return f"{settings.BASE_URL.rstrip('/')}/api/auth/activate?key={user.activation_key}"

    def send_creation_email(self, user: User) -> bool:
        """Send the activation link to a freshly created user"""
        logger.debug(f"Sending creation email to '{user.email}'")
        name = user.first_name or user.username
        body = (
            f"Dear {name},\n\n"
            f"Your account '{user.username}' has been created. "
            f"Please click on the link below to activate it:\n\n"
            f"{self.activation_link(user)}\n"
        )
        return self.send_email(user.email, "Account activation", body)

    def send_email(self, to: str, subject: str, content: str) -> bool:
        if not self.enabled:
            logger.info(f"Mail disabled, not sending '{subject}' to {to}")
            return False

        msg = MIMEMultipart()
        msg['From'] = settings.MAIL_FROM
        msg['To'] = to
        msg['Subject'] = subject
        msg.attach(MIMEText(content, 'plain'))

        try:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
                if settings.SMTP_USE_TLS:
                    server.starttls()
                if settings.SMTP_USERNAME:
                    server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Email could not be sent to user '{to}': {e}")
            return False

        logger.info(f"Sent email '{subject}' to {to}")
        return True


mail_service = MailService()


def get_mail_service() -> MailService:
    """Dependency so tests can swap in a recording mail service"""
    return mail_service
