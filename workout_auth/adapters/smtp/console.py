"""
Development email backend.

Selected with EMAIL_BACKEND=console (the default). Codes are written to the
application log, where a developer can copy them into the verify endpoints.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Writes registration and email-change codes to the log.

    Nothing leaves the process, so delivery never raises DeliveryError. Not
    for production: the log line carries the raw code.
    """

    def send_verification_code(self, email: str, code: str) -> None:
        logger.info("[VERIFICATION] Email: %s Code: %s", email, code)
