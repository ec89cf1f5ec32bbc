"""
WhatsApp Text Dispatcher
Low-level wrapper for the WhatsApp gateway's sendText endpoint.

This is the send channel used by the dispatch poller. The poller only
depends on the `MessageDispatcher` protocol, so tests (or another gateway)
can provide any object with a matching `send_text` coroutine.

Retry Strategy:
- Max 3 attempts with exponential backoff (2s, 4s, 8s)
- Only retries on: Timeout, Connection errors, 5xx server errors
- Does NOT retry on: 4xx client errors
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
    RetryError
)

from app.shared.core.config import settings
from app.shared.core.constants import (
    TIMEOUT_WHATSAPP_SEND,
    MAX_SEND_ATTEMPTS,
    SEND_RETRY_MIN_WAIT_SECONDS,
    SEND_RETRY_MAX_WAIT_SECONDS,
)
from app.shared.utils.http_client import http_client_manager
from app.shared.utils.phone_utils import to_whatsapp_chat_id

logger = logging.getLogger("whatsapp_dispatcher")


@dataclass
class DispatchResult:
    """Outcome of one send attempt."""
    success: bool
    error: Optional[str] = None
    status_code: Optional[int] = None


class MessageDispatcher(Protocol):
    """Anything that can deliver a text through a WhatsApp instance."""

    async def send_text(self, instance_name: str, phone: str, text: str) -> DispatchResult:
        ...


# ============================================
# CUSTOM EXCEPTIONS FOR RETRY LOGIC
# ============================================

class GatewayRetryableError(Exception):
    """The request should be retried (5xx)."""
    pass


class GatewayNonRetryableError(Exception):
    """The request should NOT be retried (4xx or unexpected status)."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def gateway_retry():
    """Retry decorator for gateway calls."""
    return retry(
        stop=stop_after_attempt(MAX_SEND_ATTEMPTS),
        wait=wait_exponential(
            multiplier=1,
            min=SEND_RETRY_MIN_WAIT_SECONDS,
            max=SEND_RETRY_MAX_WAIT_SECONDS
        ),
        retry=retry_if_exception_type((
            GatewayRetryableError,
            httpx.TimeoutException,
            httpx.ConnectError,
        )),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )


class WhatsAppTextDispatcher:
    """Sends plain text messages through the WhatsApp gateway."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        default_session: Optional[str] = None,
        default_country: Optional[str] = None
    ):
        self.api_url = api_url or settings.WHATSAPP_API_URL
        self.api_key = api_key if api_key is not None else settings.WHATSAPP_API_KEY
        self.default_session = default_session or settings.WHATSAPP_SESSION
        self.default_country = default_country or settings.WHATSAPP_DEFAULT_COUNTRY

        if not self.api_key:
            logger.warning("WHATSAPP_API_KEY not configured in .env")

    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_url)

    def _get_headers(self) -> dict:
        return {
            "X-Api-Key": self.api_key,
            "Content-Type": "application/json",
        }

    def build_payload(self, instance_name: str, phone: str, text: str) -> dict:
        """Request body for one text message."""
        return {
            "chatId": to_whatsapp_chat_id(phone, self.default_country),
            "text": text,
            "session": instance_name or self.default_session,
            "linkPreview": True,
            "linkPreviewHighQuality": False,
            "reply_to": None,
        }

    async def send_text(self, instance_name: str, phone: str, text: str) -> DispatchResult:
        """
        Send `text` to `phone` through `instance_name`.

        Never raises: every failure is reported as DispatchResult(success=False).
        """
        payload = self.build_payload(instance_name, phone, text)
        try:
            return await self._send_with_retry(payload)
        except (RetryError, GatewayRetryableError, httpx.TimeoutException, httpx.ConnectError) as e:
            logger.error(f"All retries exhausted sending to {payload['chatId']}: {str(e)}")
            return DispatchResult(
                success=False,
                error=f"Failed after {MAX_SEND_ATTEMPTS} attempts: {str(e) or type(e).__name__}"
            )
        except GatewayNonRetryableError as e:
            return DispatchResult(success=False, error=str(e), status_code=e.status_code)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error sending to {payload['chatId']}: {str(e)}")
            return DispatchResult(success=False, error=str(e))

    @gateway_retry()
    async def _send_with_retry(self, payload: dict) -> DispatchResult:
        """Internal method with retry decorator. Raises so tenacity can retry."""
        client = http_client_manager.get_client()
        response = await client.post(
            self.api_url,
            headers=self._get_headers(),
            json=payload,
            timeout=TIMEOUT_WHATSAPP_SEND
        )

        if response.is_success:
            logger.info(f"Text message sent to {payload['chatId']}")
            return DispatchResult(success=True, status_code=response.status_code)

        if 400 <= response.status_code < 500:
            logger.error(f"Client error {response.status_code}: {response.text}")
            raise GatewayNonRetryableError(
                f"API Error {response.status_code}: {response.text}",
                status_code=response.status_code
            )

        if response.status_code >= 500:
            logger.warning(f"Server error {response.status_code}, will retry...")
            raise GatewayRetryableError(f"API Error {response.status_code}: {response.text}")

        raise GatewayNonRetryableError(
            f"Unexpected status {response.status_code}: {response.text}",
            status_code=response.status_code
        )
