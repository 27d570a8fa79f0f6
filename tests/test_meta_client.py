from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from inbox_api.services.meta_client import (
    MetaAPIError,
    extract_sent_message_id,
    graph_url,
    post_with_retries,
    send_instagram_message,
    send_whatsapp_message,
)


def _response(status_code, body=None):
    response = MagicMock(status_code=status_code, text=str(body))
    response.json.return_value = body or {}
    return response


class TestGraphUrl:
    def test_adds_version_and_slash(self):
        assert graph_url("me/messages") == "https://graph.facebook.com/v19.0/me/messages"

    def test_respects_configured_base(self, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "meta_graph_api_base_url", "https://graph.example.test/")
        monkeypatch.setattr(test_settings, "meta_graph_api_version", "v21.0")
        assert graph_url("/123/messages") == "https://graph.example.test/v21.0/123/messages"


class TestPostWithRetries:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        sleep = AsyncMock()
        with patch(
            "inbox_api.services.meta_client._post_json",
            AsyncMock(return_value=_response(200, {"message_id": "mid.1"})),
        ) as post:
            result = await post_with_retries("https://x", "token", {}, sleep_func=sleep)

        assert result == {"message_id": "mid.1"}
        assert post.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_server_errors_with_linear_backoff(self):
        sleep = AsyncMock()
        responses = [_response(502), _response(500), _response(200, {"ok": True})]
        with patch("inbox_api.services.meta_client._post_json", AsyncMock(side_effect=responses)) as post:
            result = await post_with_retries("https://x", "token", {}, max_retries=2, sleep_func=sleep)

        assert result == {"ok": True}
        assert post.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        sleep = AsyncMock()
        with patch(
            "inbox_api.services.meta_client._post_json", AsyncMock(return_value=_response(503, "down"))
        ) as post:
            with pytest.raises(MetaAPIError) as exc_info:
                await post_with_retries("https://x", "token", {}, max_retries=2, sleep_func=sleep)

        assert exc_info.value.status_code == 503
        assert post.await_count == 3

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        sleep = AsyncMock()
        with patch(
            "inbox_api.services.meta_client._post_json",
            AsyncMock(return_value=_response(400, {"error": {"message": "bad token"}})),
        ) as post:
            with pytest.raises(MetaAPIError) as exc_info:
                await post_with_retries("https://x", "token", {}, max_retries=2, sleep_func=sleep)

        assert exc_info.value.status_code == 400
        assert post.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_network_errors_are_retried(self):
        sleep = AsyncMock()
        side_effect = [httpx.ConnectError("refused"), _response(200, {"ok": True})]
        with patch("inbox_api.services.meta_client._post_json", AsyncMock(side_effect=side_effect)):
            result = await post_with_retries("https://x", "token", {}, max_retries=2, sleep_func=sleep)

        assert result == {"ok": True}
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_network_error_after_retries_raises(self):
        sleep = AsyncMock()
        with patch(
            "inbox_api.services.meta_client._post_json",
            AsyncMock(side_effect=httpx.ReadTimeout("slow")),
        ):
            with pytest.raises(MetaAPIError):
                await post_with_retries("https://x", "token", {}, max_retries=1, sleep_func=sleep)


class TestSendFunctions:
    @pytest.mark.asyncio
    async def test_instagram_payload(self):
        with patch("inbox_api.services.meta_client.post_with_retries", AsyncMock(return_value={})) as post:
            await send_instagram_message("IGSID_1", "hello", "ig-token")

        url, token, payload = post.await_args.args
        assert url.endswith("/me/messages")
        assert token == "ig-token"
        assert payload == {"recipient": {"id": "IGSID_1"}, "message": {"text": "hello"}}

    @pytest.mark.asyncio
    async def test_whatsapp_payload(self):
        with patch("inbox_api.services.meta_client.post_with_retries", AsyncMock(return_value={})) as post:
            await send_whatsapp_message("PHONE_ID_1", "971501234567", "hello", "wa-token")

        url, token, payload = post.await_args.args
        assert url.endswith("/PHONE_ID_1/messages")
        assert payload == {
            "messaging_product": "whatsapp",
            "to": "971501234567",
            "type": "text",
            "text": {"body": "hello"},
        }


class TestExtractSentMessageId:
    def test_whatsapp(self):
        assert extract_sent_message_id("WHATSAPP", {"messages": [{"id": "wamid.OUT"}]}) == "wamid.OUT"

    def test_instagram(self):
        assert extract_sent_message_id("INSTAGRAM", {"recipient_id": "1", "message_id": "mid.OUT"}) == "mid.OUT"

    def test_missing(self):
        assert extract_sent_message_id("WHATSAPP", {}) is None
        assert extract_sent_message_id("INSTAGRAM", None) is None
