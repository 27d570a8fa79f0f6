from inbox_api.models.ai_assistant import AIAssistant
from inbox_api.models.audit_log import AuditLog
from inbox_api.models.auto_reply_rule import AutoReplyRule
from inbox_api.models.channel import Channel
from inbox_api.models.conversation import Conversation
from inbox_api.models.instagram_account import InstagramAccount
from inbox_api.models.instagram_message import InstagramMessage
from inbox_api.models.lead import Lead
from inbox_api.models.message import Message
from inbox_api.models.notification import Notification
from inbox_api.models.user import User
from inbox_api.models.whatsapp_account import WhatsappAccount
from inbox_api.models.whatsapp_message import WhatsappMessage

__all__ = [
    "User",
    "Lead",
    "Channel",
    "Conversation",
    "Message",
    "WhatsappMessage",
    "InstagramMessage",
    "WhatsappAccount",
    "InstagramAccount",
    "AutoReplyRule",
    "AIAssistant",
    "Notification",
    "AuditLog",
]
