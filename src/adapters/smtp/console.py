"""
Console mailer adapter - Implements Mailer protocol.

This module provides a console-based implementation of the domain's
mailer port, logging verification links to stdout for demo purposes.
"""

import logging
from datetime import datetime

from src.domain.cancellation import CancelScope
from src.domain.values import Email

logger = logging.getLogger(__name__)


class ConsoleMailer:
    """
    Implements Mailer protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints verification links to stdout.
    """

    def send_verification_email(
        self, scope: CancelScope, email: Email, verification_url: str, expires_at: datetime
    ) -> None:
        """
        Log the verification link to console (simulates email delivery).

        In production, this would be replaced with an SMTP adapter.
        The link is logged at INFO level to be visible in docker-compose logs.

        Args:
            scope: Cancel scope of the current request
            email: Recipient email address (normalized by domain layer)
            verification_url: Capability link carrying the token secret
            expires_at: When the link stops working
        """
        scope.check()
        logger.info(
            "[VERIFICATION] Email: %s URL: %s Expires: %s",
            email,
            verification_url,
            expires_at.isoformat(),
        )
