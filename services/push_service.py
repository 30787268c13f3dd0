# services/push_service.py
import logging
from collections import deque
from typing import Deque, Optional

import httpx

from core.errors import PushDeliveryError
from models.member import PushMessage

logger = logging.getLogger(__name__)


class PushService:
    """
    Outbound mobile push delivery.

    - Preferred: POST an FCM-style message to FCM_ENDPOINT with the server key
    - Fallback (no endpoint configured): log the push to the console

    Delivery is fire-and-forget with no retry; a failed call raises
    PushDeliveryError and the caller decides whether to skip the recipient.
    """

    def __init__(self, endpoint: Optional[str] = None, server_key: Optional[str] = None,
                 timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None,
                 history_size: int = 20):
        self.endpoint = endpoint
        self.server_key = server_key
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout
        # only the most recent pushes are kept, for /push/recent
        self.sent_notifications: Deque[dict] = deque(maxlen=history_size)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def send(self, message: PushMessage) -> dict:
        if not message.token:
            raise PushDeliveryError("push token is empty")

        if not self.endpoint:
            banner = "=" * 60
            logger.info("%s\n[PUSH][FALLBACK] token=%s title=%s body=%s\n%s",
                        banner, message.token, message.title, message.body, banner)
            result = {**message.model_dump(), "published": False}
            self.sent_notifications.append(result)
            return result

        payload = {
            "message": {
                "token": message.token,
                "notification": {"title": message.title, "body": message.body},
            }
        }
        headers = {"Authorization": f"Bearer {self.server_key}"} if self.server_key else {}
        try:
            resp = await self._http().post(self.endpoint, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("[PUSH] delivery to %s failed: %s", message.token, e)
            raise PushDeliveryError(f"push delivery failed: {e}") from e

        logger.info("[PUSH] delivered to %s: %s", message.token, message.title)
        result = {**message.model_dump(), "published": True}
        self.sent_notifications.append(result)
        return result

    def recent_notifications(self):
        """Return the most recent pushes, oldest first."""
        return list(self.sent_notifications)

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
