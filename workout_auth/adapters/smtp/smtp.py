"""
SMTP email sender adapter - Implements EmailSender protocol.

Delivers verification codes over SMTP with STARTTLS. Every network
operation is bounded by the configured timeout; any failure is raised as
DeliveryError so the triggering use case aborts.
"""

import logging
import smtplib
from email.message import EmailMessage

from workout_auth.domain.exceptions import DeliveryError

logger = logging.getLogger(__name__)

SUBJECT = "Your verification code"

BODY_TEMPLATE = """Hello,

Your verification code is: {code}

The code expires in {ttl_minutes} minutes. If you did not request it, you can
ignore this message.
"""


class SmtpEmailSender:
    """
    Implements EmailSender protocol via smtplib.

    Opens one connection per message; verification mail is low volume.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        timeout: float = 10.0,
        ttl_minutes: int = 15,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._from_address = from_address
        self._timeout = timeout
        self._ttl_minutes = ttl_minutes

    def build_message(self, email: str, code: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._from_address
        message["To"] = email
        message["Subject"] = SUBJECT
        message.set_content(BODY_TEMPLATE.format(code=code, ttl_minutes=self._ttl_minutes))
        return message

    def send_verification_code(self, email: str, code: str) -> None:
        """
        Deliver the code to ``email``.

        Raises:
            DeliveryError: connection, TLS, authentication or send failure
        """
        message = self.build_message(email, code)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as client:
                client.starttls()
                client.login(self._username, self._password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Verification email delivery failed: host=%s error=%s", self._host, e)
            raise DeliveryError(f"SMTP delivery failed: {e}") from e

        logger.info("Verification email sent: to=%s", email)
