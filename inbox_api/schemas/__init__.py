from inbox_api.schemas.webhook import (
    InstagramWebhookPayload,
    MetaWebhookPayload,
    UnifiedMessagePayload,
    WebhookAck,
    WhatsAppWebhookPayload,
)

__all__ = [
    "InstagramWebhookPayload",
    "WhatsAppWebhookPayload",
    "MetaWebhookPayload",
    "UnifiedMessagePayload",
    "WebhookAck",
]
