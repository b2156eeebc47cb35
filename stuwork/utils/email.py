import asyncio
import logging
import smtplib
from concurrent.futures import ThreadPoolExecutor
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from stuwork import config

logger = logging.getLogger(__name__)

# Thread pool for blocking SMTP calls
executor = ThreadPoolExecutor(max_workers=3)

# SMTP Configuration for different providers
SMTP_CONFIGS = {
    'gmail': {'host': 'smtp.gmail.com', 'port': 587, 'use_tls': True},
    'outlook': {'host': 'smtp-mail.outlook.com', 'port': 587, 'use_tls': True},
    'yahoo': {'host': 'smtp.mail.yahoo.com', 'port': 587, 'use_tls': True},
    'office365': {'host': 'smtp.office365.com', 'port': 587, 'use_tls': True},
}

OTP_SUBJECTS = {
    "registration": "Verify Your Email - Stuwork",
    "password_reset": "Password Reset OTP - Stuwork",
}


def detect_email_provider(email_address):
    """Auto-detect email provider from email address"""
    email_lower = email_address.lower()
    if '@gmail.com' in email_lower:
        return 'gmail'
    elif '@outlook.com' in email_lower or '@hotmail.com' in email_lower:
        return 'outlook'
    elif '@yahoo.com' in email_lower:
        return 'yahoo'
    else:
        return 'custom'


class Mailer:
    """
    Mail relay client.

    Without credentials it runs in console mode: messages are logged instead
    of sent and delivery counts as successful.
    """

    def __init__(
        self,
        username=None,
        password=None,
        sender=None,
        sender_name=None,
        provider=None,
        frontend_url=None,
    ):
        self.username = config.MAIL_USERNAME if username is None else username
        self.password = config.MAIL_PASSWORD if password is None else password
        self.sender = sender or config.MAIL_FROM or self.username
        self.sender_name = sender_name or config.MAIL_FROM_NAME
        self.provider = (provider or config.MAIL_PROVIDER).lower()
        self.frontend_url = frontend_url or config.FRONTEND_URL

    @property
    def console_mode(self) -> bool:
        return not self.username or not self.password

    def smtp_config(self):
        provider = self.provider
        if provider == 'auto':
            provider = detect_email_provider(self.username)
            logger.debug("📧 Auto-detected provider: %s", provider)
        return SMTP_CONFIGS.get(
            provider,
            {'host': config.SMTP_HOST, 'port': config.SMTP_PORT, 'use_tls': True},
        )

    def send_email_sync(self, to_email, subject, html_content, text_content=None) -> bool:
        """Send one message over SMTP. Returns False on any SMTP failure."""
        smtp_config = self.smtp_config()

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.sender_name} <{self.sender}>"
        message["To"] = to_email

        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            with smtplib.SMTP(smtp_config['host'], smtp_config['port'], timeout=15) as server:
                server.ehlo()
                if smtp_config['use_tls']:
                    server.starttls()
                    server.ehlo()
                server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("❌ Email to %s failed: %s", to_email, e)
            return False

        logger.info("✅ Email sent to %s", to_email)
        return True

    async def send_email(self, to_email, subject, html_content, text_content=None) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            executor, self.send_email_sync, to_email, subject, html_content, text_content
        )

    async def send_otp_email(self, email, otp, purpose="registration") -> bool:
        """Deliver an OTP. Returns whether the relay accepted the message."""
        if self.console_mode:
            logger.info("========== OTP (Console Mode) ==========")
            logger.info("To: %s | Purpose: %s | OTP: %s", email, purpose, otp)
            return True

        subject = OTP_SUBJECTS.get(purpose, OTP_SUBJECTS["registration"])
        minutes = config.OTP_EXPIRE_MINUTES

        text_content = f"""
Hello,

Your Stuwork OTP is: {otp}

This OTP is valid for {minutes} minutes.
If you did not request this, please ignore this email.
"""

        html_content = f"""
<div style="font-family: Arial, sans-serif; padding: 20px;">
    <h2>Stuwork</h2>
    <p>Your OTP is:</p>
    <h1 style="letter-spacing: 6px;">{otp}</h1>
    <p>This OTP is valid for {minutes} minutes.</p>
    <p>If you did not request this, please ignore this email.</p>
</div>
"""
        return await self.send_email(email, subject, html_content, text_content)

    async def send_welcome_email(self, email, name) -> bool:
        if self.console_mode:
            logger.info("🎉 Welcome %s <%s>! (Console mode)", name, email)
            return True

        html_content = f"""
<div style="font-family: Arial, sans-serif; padding: 20px;">
    <h2>Welcome to Stuwork, {name} 🎉</h2>
    <p>Your account has been successfully verified.</p>
    <a href="{self.frontend_url}/dashboard">Go to Dashboard</a>
</div>
"""
        return await self.send_email(email, "Welcome to Stuwork!", html_content)
