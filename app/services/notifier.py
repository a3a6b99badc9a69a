# app/services/notifier.py
"""
Outbound notification channel (Slack incoming webhook).
Used by the ingestion job to report each run's outcome.
Delivery failures are logged and dropped — never retried, never raised.
"""

from datetime import datetime
from typing import Optional
import httpx
from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

SUCCESS_COLOR = "#28a745"
ERROR_COLOR = "#dc3545"


def build_payload(title: str, message: str, is_error: bool = False, sent_at: Optional[datetime] = None) -> dict:
    emoji = ":x:" if is_error else ":white_check_mark:"
    stamp = (sent_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    return {
        "attachments": [{
            "color": ERROR_COLOR if is_error else SUCCESS_COLOR,
            "blocks": [
                {"type": "section", "text": {"type": "mrkdwn", "text": f"{emoji} *{title}*\n{message}"}},
                {"type": "context", "elements": [{"type": "mrkdwn", "text": stamp}]},
            ],
        }]
    }


class SlackNotifier:
    def __init__(self, webhook_url: Optional[str] = None, title: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 10.0):
        self.webhook_url = webhook_url if webhook_url is not None else settings.SLACK_WEBHOOK_URL
        self.title = title or settings.NOTIFICATION_TITLE
        self._transport = transport
        self._timeout = timeout

    async def notify(self, message: str, is_error: bool = False) -> bool:
        """Post one message. Returns True if the webhook accepted it."""
        if not self.webhook_url:
            logger.info("Slack webhook URL not configured — notification skipped")
            return False

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=build_payload(self.title, message, is_error))
            if response.is_error:
                logger.error(f"[NOTIFY] Slack returned HTTP {response.status_code}")
                return False
            return True
        except Exception as e:
            logger.error(f"[NOTIFY] Slack delivery failed: {e}")
            return False
