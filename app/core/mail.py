from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

from app.core.config import Settings
from app.core.logger import get_logger

OTP_SUBJECT = "Your SINEVA OTP Code"

OTP_TEMPLATE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto; background-color: #f9f9f9; padding: 20px; color: #333;">
  <div style="background-color: #000; color: #fff; padding: 20px; text-align: center;">
    <h1 style="margin: 0;">SINEVA</h1>
  </div>
  <div style="background: #fff; padding: 30px; border-radius: 8px; margin-top: 20px; text-align: center;">
    <h2>Your One-Time Password (OTP)</h2>
    <p style="font-size: 20px; margin: 20px 0;"><strong>{otp}</strong></p>
    <p>This OTP is valid for <strong>{minutes} minutes</strong>. Please do not share it with anyone.</p>
  </div>
</div>
"""


def build_mail_config(settings: Settings) -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.mail_username,
        MAIL_PASSWORD=settings.mail_password,
        MAIL_FROM=settings.mail_from,
        MAIL_PORT=settings.mail_port,
        MAIL_SERVER=settings.mail_server,
        MAIL_FROM_NAME="SINEVA",
        MAIL_STARTTLS=settings.mail_port == 587,
        MAIL_SSL_TLS=settings.mail_port == 465,
        USE_CREDENTIALS=True,
        VALIDATE_CERTS=True,
    )


class OtpMailer:
    def __init__(self, fm: FastMail, valid_minutes: int):
        self._fm = fm
        self._valid_minutes = valid_minutes
        self._logger = get_logger(__name__)

    async def send(self, email: str, otp: str) -> None:
        message = MessageSchema(
            subject=OTP_SUBJECT,
            recipients=[email],
            body=OTP_TEMPLATE.format(otp=otp, minutes=self._valid_minutes),
            subtype=MessageType.html,
        )
        await self._fm.send_message(message)
        self._logger.info("otp_mail_sent", email=email)
