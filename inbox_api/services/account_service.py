from typing import Optional

from sqlalchemy.orm import Session

from inbox_api.models import InstagramAccount, WhatsappAccount


def find_whatsapp_account(db: Session, phone_number_id: str) -> Optional[WhatsappAccount]:
    """Business WhatsApp number the message was delivered to."""
    if not phone_number_id:
        return None
    return db.query(WhatsappAccount).filter(WhatsappAccount.phone_number_id == phone_number_id).first()


def find_instagram_account(db: Session, ig_user_id: str) -> Optional[InstagramAccount]:
    if not ig_user_id:
        return None
    return db.query(InstagramAccount).filter(InstagramAccount.ig_user_id == ig_user_id).first()


def get_access_token(db: Session, platform: str, business_id: str) -> Optional[str]:
    if platform == "WHATSAPP":
        account = find_whatsapp_account(db, business_id)
    else:
        account = find_instagram_account(db, business_id)
    if not account or account.is_active is False:
        return None
    token = (account.access_token or "").strip()
    return token or None
