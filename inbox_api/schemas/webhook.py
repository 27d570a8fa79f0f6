from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Platform = Literal["INSTAGRAM", "WHATSAPP"]


class MetaModel(BaseModel):
    """Meta sends numeric ids as strings on some endpoints and as numbers on others."""

    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True, extra="ignore")


# Instagram (object = "instagram", entry[].messaging[])


class InstagramParticipant(MetaModel):
    id: str
    username: Optional[str] = None
    is_user: Optional[bool] = None


class InstagramMessageBody(MetaModel):
    mid: Optional[str] = None
    text: Optional[str] = None
    is_echo: bool = False


class InstagramMessagingEvent(MetaModel):
    sender: InstagramParticipant
    recipient: Optional[InstagramParticipant] = None
    timestamp: Optional[int] = None  # epoch milliseconds
    message: Optional[InstagramMessageBody] = None


class InstagramEntry(MetaModel):
    id: Optional[str] = None
    time: Optional[int] = None
    messaging: list[InstagramMessagingEvent] = []


class InstagramWebhookPayload(MetaModel):
    kind: Literal["instagram"] = "instagram"
    object: Literal["instagram", "page"]
    entry: list[InstagramEntry] = []


# WhatsApp Cloud API (entry[].changes[] with field = "messages")


class WhatsAppText(MetaModel):
    body: str = ""


class WhatsAppInboundMessage(MetaModel):
    id: str
    sender: str = Field(alias="from")
    timestamp: Optional[str] = None  # epoch seconds
    type: str = "text"
    text: Optional[WhatsAppText] = None


class WhatsAppMetadata(MetaModel):
    phone_number_id: str
    display_phone_number: Optional[str] = None


class WhatsAppValue(MetaModel):
    messaging_product: Optional[str] = None
    metadata: Optional[WhatsAppMetadata] = None
    messages: list[WhatsAppInboundMessage] = []


class WhatsAppChange(MetaModel):
    field: str
    value: Optional[WhatsAppValue] = None


class WhatsAppEntry(MetaModel):
    id: Optional[str] = None
    changes: list[WhatsAppChange] = []


class WhatsAppWebhookPayload(MetaModel):
    kind: Literal["whatsapp"] = "whatsapp"
    object: Optional[str] = None
    entry: list[WhatsAppEntry] = []


MetaWebhookPayload = Union[InstagramWebhookPayload, WhatsAppWebhookPayload]


class UnifiedMessagePayload(BaseModel):
    """Platform-agnostic inbound message handed to the ingestion pipeline."""

    platform: Platform
    timestamp: int  # epoch milliseconds
    external_id: str
    sender_id: str
    recipient_id: str
    text: str = ""
    entrypoint: str = "meta_webhook"
    sender_username: Optional[str] = None


class WebhookAck(BaseModel):
    success: bool = True
