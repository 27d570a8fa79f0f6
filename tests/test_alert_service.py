from unittest.mock import MagicMock, Mock, patch

from inbox_api.services.alert_service import alert_error, alert_warning, format_alert, send_alert


class TestSendAlert:
    def test_returns_false_when_not_configured(self):
        result = send_alert("ERROR", "Test message")
        assert result is False

    @patch("inbox_api.services.alert_service.httpx.Client")
    def test_sends_alert_to_telegram(self, mock_client_class, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "alert_bot_token", "test-token")
        monkeypatch.setattr(test_settings, "alert_chat_id", "test-chat")
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.return_value = Mock(status_code=200)

        result = send_alert("ERROR", "Test error message")

        assert result is True
        mock_client.post.assert_called_once()
        call_args = mock_client.post.call_args
        assert "api.telegram.org/bottest-token" in call_args[0][0]
        json_data = call_args[1]["json"]
        assert json_data["chat_id"] == "test-chat"
        assert "ERROR" in json_data["text"]

    @patch("inbox_api.services.alert_service.httpx.Client")
    def test_returns_false_on_exception(self, mock_client_class, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "alert_bot_token", "test-token")
        monkeypatch.setattr(test_settings, "alert_chat_id", "test-chat")
        mock_client_class.return_value.__enter__.side_effect = Exception("Network error")

        assert send_alert("ERROR", "Test message") is False


class TestFormatAlert:
    def test_includes_context_block(self):
        text = format_alert("WARNING", "Send failed", {"platform": "WHATSAPP"})

        assert "*WARNING*" in text
        assert "Send failed" in text
        assert "platform: WHATSAPP" in text

    def test_no_context_block_without_context(self):
        assert "```" not in format_alert("INFO", "ok")


class TestShortcuts:
    @patch("inbox_api.services.alert_service.send_alert")
    def test_alert_error(self, mock_send):
        alert_error("boom", {"k": "v"})
        mock_send.assert_called_once_with("ERROR", "boom", {"k": "v"})

    @patch("inbox_api.services.alert_service.send_alert")
    def test_alert_warning(self, mock_send):
        alert_warning("careful")
        mock_send.assert_called_once_with("WARNING", "careful", None)
