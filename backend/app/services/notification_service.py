"""
User notifications.

Delivery is out of scope for the API; each notification is emitted as a
structured `notification_sent` log event that a downstream mailer can
consume from the log stream.
"""

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def notify(recipient: str, template: str, **context) -> None:
    logger.info("notification_sent", recipient=recipient, template=template, **context)


def notify_admin(template: str, **context) -> None:
    notify(get_settings().SUPPORT_EMAIL, template, **context)
