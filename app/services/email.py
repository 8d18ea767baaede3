"""Activation and password-reset mail delivery."""

import logging

import aiosmtplib
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.errors import ConnectionErrors

from app.config import get_settings
from app.exceptions import EmailDeliveryFailure
from app.i18n import translate

logger = logging.getLogger("accounts.email")


def build_connection_config() -> ConnectionConfig:
    settings = get_settings()
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=settings.MAIL_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
        VALIDATE_CERTS=settings.MAIL_SSL_TLS or settings.MAIL_STARTTLS,
        SUPPRESS_SEND=1 if settings.MAIL_SUPPRESS_SEND else 0,
        TIMEOUT=settings.MAIL_TIMEOUT,
    )


class EmailService:
    """Sends account mails through fastapi-mail."""

    def __init__(self, mailer: FastMail | None = None) -> None:
        self.mailer = mailer or FastMail(build_connection_config())
        self.frontend_url = get_settings().FRONTEND_URL.rstrip("/")

    async def send_account_activation(self, email: str, token: str, locale: str = "en") -> None:
        link = f"{self.frontend_url}/#/login?token={token}"
        await self._send(
            email,
            translate("activation_email_subject", locale),
            self._render(translate("activation_email_body", locale), link, token),
        )

    async def send_password_reset(self, email: str, token: str, locale: str = "en") -> None:
        link = f"{self.frontend_url}/#/password-reset?reset={token}"
        await self._send(
            email,
            translate("password_reset_email_subject", locale),
            self._render(translate("password_reset_email_body", locale), link, token),
        )

    @staticmethod
    def _render(text: str, link: str, token: str) -> str:
        return f"""
    <div>
        <b>{text}</b>
    </div>
    <div>
        <a href="{link}">{link}</a>
        Token is {token}
    </div>"""

    async def _send(self, email: str, subject: str, html: str) -> None:
        message = MessageSchema(subject=subject, recipients=[email], body=html, subtype=MessageType.html)
        try:
            await self.mailer.send_message(message)
        except (ConnectionErrors, aiosmtplib.SMTPException, OSError) as e:
            logger.warning("Mail delivery failed (%s): %s", subject, e)
            raise EmailDeliveryFailure() from e


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get singleton email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
