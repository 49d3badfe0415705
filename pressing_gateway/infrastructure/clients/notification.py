"""Notification gateway HTTP client for sending receipts by WhatsApp or email"""

import httpx
from typing import Any, Dict
from pressing_gateway.domain.models import DispatchChannel
from pressing_gateway.domain.exceptions import NotificationError
from pressing_gateway.config import settings
from pressing_gateway.infrastructure.observability.metrics import notification_latency_histogram


class NotificationClient:
    """Client for the external notification gateway"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.notification_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def send_receipt(self, recipient: str, message: str, channel: DispatchChannel) -> Dict[str, Any]:
        """
        Send one receipt message.

        Single attempt: retries are an operator decision.

        Returns:
            {"message_id": ..., "status": ...} as reported by the gateway

        Raises:
            NotificationError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with notification_latency_histogram.time():
                    response = await client.post(
                        f"{self.base_url}/messages",
                        json={"to": recipient, "channel": channel.value, "message": message},
                    )
                response.raise_for_status()
                data = response.json()

                return {"message_id": str(data["message_id"]), "status": data["status"]}

            except httpx.TimeoutException as e:
                raise NotificationError(f"Notification gateway timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise NotificationError(f"Notification gateway error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise NotificationError(f"Notification gateway unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise NotificationError(f"Invalid response from notification gateway: {e}") from e
