"""Graph API client for the Instagram and WhatsApp send endpoints."""

import asyncio
from typing import Awaitable, Callable, Optional

import httpx

from inbox_api.config import settings
from inbox_api.logging_config import get_logger

logger = get_logger("meta_client")

SleepFunc = Callable[[float], Awaitable[None]]


class MetaAPIError(Exception):
    """Send request rejected by the Graph API or unreachable after retries."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def graph_url(path: str) -> str:
    clean_path = path if path.startswith("/") else f"/{path}"
    base = settings.meta_graph_api_base_url.rstrip("/")
    return f"{base}/{settings.meta_graph_api_version}{clean_path}"


def meta_headers(access_token: str) -> dict:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {access_token}",
    }


async def _post_json(url: str, access_token: str, payload: dict, timeout: float) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.post(url, headers=meta_headers(access_token), json=payload)


async def post_with_retries(
    url: str,
    access_token: str,
    payload: dict,
    *,
    max_retries: Optional[int] = None,
    sleep_func: SleepFunc = asyncio.sleep,
) -> dict:
    """POST to the Graph API, retrying 5xx and network errors with linear back-off.

    4xx responses are not retried: the request itself is wrong (bad token,
    closed messaging window) and repeating it cannot succeed.
    """
    retries = settings.meta_send_max_retries if max_retries is None else max_retries
    timeout = settings.meta_send_timeout_seconds

    attempt = 0
    while True:
        try:
            response = await _post_json(url, access_token, payload, timeout)
        except httpx.HTTPError as exc:
            if attempt < retries:
                attempt += 1
                logger.warning(
                    "Graph API network error, retrying",
                    extra={"context": {"url": url, "attempt": attempt, "error": str(exc)}},
                )
                await sleep_func(float(attempt))
                continue
            raise MetaAPIError(f"Graph API unreachable: {exc}") from exc

        if response.status_code < 400:
            try:
                return response.json()
            except ValueError:
                return {}

        body = response.text
        if response.status_code >= 500 and attempt < retries:
            attempt += 1
            logger.warning(
                "Graph API server error, retrying",
                extra={"context": {"url": url, "attempt": attempt, "status_code": response.status_code}},
            )
            await sleep_func(float(attempt))
            continue

        raise MetaAPIError(
            f"Graph API error {response.status_code}",
            status_code=response.status_code,
            body=body[:500],
        )


async def send_instagram_message(
    recipient_id: str,
    message: str,
    access_token: str,
    page_id: str = "me",
    sleep_func: SleepFunc = asyncio.sleep,
) -> dict:
    payload = {
        "recipient": {"id": recipient_id},
        "message": {"text": message},
    }
    return await post_with_retries(
        graph_url(f"/{page_id}/messages"), access_token, payload, sleep_func=sleep_func
    )


async def send_whatsapp_message(
    phone_number_id: str,
    recipient_number: str,
    message: str,
    access_token: str,
    sleep_func: SleepFunc = asyncio.sleep,
) -> dict:
    payload = {
        "messaging_product": "whatsapp",
        "to": recipient_number,
        "type": "text",
        "text": {"body": message},
    }
    return await post_with_retries(
        graph_url(f"/{phone_number_id}/messages"), access_token, payload, sleep_func=sleep_func
    )


def extract_sent_message_id(platform: str, response: Optional[dict]) -> Optional[str]:
    """Platform id of a sent message, if the send response carries one."""
    if not isinstance(response, dict):
        return None
    if platform == "WHATSAPP":
        messages = response.get("messages") or []
        if messages and isinstance(messages[0], dict) and messages[0].get("id"):
            return str(messages[0]["id"])
        return None
    message_id = response.get("message_id")
    return str(message_id) if message_id else None
