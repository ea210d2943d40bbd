"""SMTP client wrapper for email delivery.

A thin wrapper around smtplib with TLS/SSL support, authentication and
connection cleanup.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from mentormatch.config.environment import EnvironmentConfig

from .models import SMTPDeliveryError

logger = logging.getLogger(__name__)


class SMTPClient:
    """Sends EmailMessage objects through the configured SMTP server.

    The smtplib factories are injectable so tests can substitute mocks.
    """

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        """
        Args:
            smtp_factory: Plain SMTP connection factory (default smtplib.SMTP)
            smtp_ssl_factory: Implicit TLS factory (default smtplib.SMTP_SSL)
        """
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def send(
        self,
        message: EmailMessage,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
    ) -> None:
        """Send an email message via SMTP.

        Port 465 uses implicit TLS; other ports use STARTTLS when ``use_tls``.

        Args:
            message: Fully built message, headers included
            env_config: SMTP host, port and credentials
            use_tls: Upgrade plain connections with STARTTLS

        Raises:
            SMTPDeliveryError: If message delivery fails
        """
        smtp = None
        try:
            # TLS mode follows the port: 465 is implicit TLS, anything else is
            # plain SMTP with an optional STARTTLS upgrade
            if env_config.smtp_port == 465:
                logger.debug(
                    f"Connecting to {env_config.smtp_host}:{env_config.smtp_port} with implicit TLS"
                )
                context = ssl.create_default_context()
                smtp = self.smtp_ssl_factory(
                    env_config.smtp_host, env_config.smtp_port, context=context
                )
            else:
                logger.debug(f"Connecting to {env_config.smtp_host}:{env_config.smtp_port}")
                smtp = self.smtp_factory(env_config.smtp_host, env_config.smtp_port)

                if use_tls:
                    logger.debug("Upgrading connection with STARTTLS")
                    context = ssl.create_default_context()
                    smtp.starttls(context=context)

            # Relays without credentials accept unauthenticated mail
            if env_config.smtp_user and env_config.smtp_pass:
                logger.debug(f"Authenticating as {env_config.smtp_user}")
                smtp.login(env_config.smtp_user, env_config.smtp_pass)

            smtp.send_message(message)
            logger.debug(f"Message sent successfully to {message['To']}")

        except smtplib.SMTPException as e:
            error_msg = f"SMTP error during message delivery: {e}"
            logger.error(error_msg)
            raise SMTPDeliveryError(error_msg) from e
        except OSError as e:
            error_msg = f"Network error during SMTP connection: {e}"
            logger.error(error_msg)
            raise SMTPDeliveryError(error_msg) from e
        finally:
            # Close the connection even when delivery failed
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def parse_recipient(address: str) -> str:
    """Validate and normalise a single recipient address.

    Deliverability (DNS) checks are skipped; the SMTP server is the judge.

    Args:
        address: Raw address, surrounding whitespace allowed

    Returns:
        The normalised address

    Raises:
        ValueError: If the address is invalid
    """
    try:
        validated = validate_email(address.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"Invalid recipient email address '{address}': {e}") from e
    return validated.normalized


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Build the From header, falling back to noreply@<smtp host>.

    Example:
        "Mentor Match <matches@example.org>"
    """
    # The authenticated user doubles as the sender when configured
    sender_email = env_config.smtp_user or f"noreply@{env_config.smtp_host}"
    return f"{env_config.smtp_sender_name} <{sender_email}>"
