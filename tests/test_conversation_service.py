from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from inbox_api.models import Conversation
from inbox_api.services.conversation_service import (
    STATUS_ACTIVE,
    STATUS_ARCHIVED,
    as_utc,
    find_active_conversation,
    from_epoch_ms,
    get_or_create_conversation,
)
from inbox_api.services.identity_service import upsert_channel

T0 = datetime(2024, 5, 29, 12, 0, tzinfo=timezone.utc)


class TestTimeHelpers:
    def test_from_epoch_ms(self):
        assert from_epoch_ms(1717000000000) == datetime(2024, 5, 29, 16, 26, 40, tzinfo=timezone.utc)

    def test_as_utc_attaches_zone_to_naive(self):
        assert as_utc(datetime(2024, 1, 1)).tzinfo is timezone.utc

    def test_as_utc_handles_none(self):
        assert as_utc(None) < T0


class TestGetOrCreateConversation:
    def test_creates_active_conversation(self, db):
        channel = upsert_channel(db, "WHATSAPP", "971501234567")

        conversation = get_or_create_conversation(db, channel.id, "971501234567", T0)

        assert conversation.status == STATUS_ACTIVE
        assert conversation.contact_id == "971501234567"
        assert as_utc(conversation.last_message_at) == T0

    def test_reuses_active_conversation_and_bumps_time(self, db):
        channel = upsert_channel(db, "WHATSAPP", "971501234567")
        first = get_or_create_conversation(db, channel.id, "971501234567", T0)

        later = T0 + timedelta(minutes=5)
        second = get_or_create_conversation(db, channel.id, "971501234567", later)

        assert second.id == first.id
        assert as_utc(second.last_message_at) == later
        assert db.query(Conversation).count() == 1

    def test_late_delivery_does_not_move_time_backwards(self, db):
        channel = upsert_channel(db, "WHATSAPP", "971501234567")
        get_or_create_conversation(db, channel.id, "971501234567", T0)

        conversation = get_or_create_conversation(db, channel.id, "971501234567", T0 - timedelta(hours=1))

        assert as_utc(conversation.last_message_at) == T0

    def test_archived_conversation_is_not_reused(self, db):
        channel = upsert_channel(db, "INSTAGRAM", "IGSID_1")
        old = get_or_create_conversation(db, channel.id, "IGSID_1", T0)
        old.status = STATUS_ARCHIVED
        db.commit()

        fresh = get_or_create_conversation(db, channel.id, "IGSID_1", T0 + timedelta(days=1))

        assert fresh.id != old.id
        assert fresh.status == STATUS_ACTIVE

    def test_one_active_conversation_per_channel_is_enforced(self, db):
        channel = upsert_channel(db, "INSTAGRAM", "IGSID_1")
        get_or_create_conversation(db, channel.id, "IGSID_1", T0)

        db.add(
            Conversation(
                channel_id=channel.id,
                contact_id="IGSID_1",
                status=STATUS_ACTIVE,
                last_message_at=T0,
                created_at=T0,
            )
        )
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

        assert db.query(Conversation).count() == 1

    def test_concurrent_create_reuses_winner(self, db):
        channel = upsert_channel(db, "INSTAGRAM", "IGSID_1")
        winner = get_or_create_conversation(db, channel.id, "IGSID_1", T0)
        calls = []

        def find_after_race(session, channel_id):
            calls.append(channel_id)
            if len(calls) == 1:
                return None
            return find_active_conversation(session, channel_id)

        with patch(
            "inbox_api.services.conversation_service.find_active_conversation",
            side_effect=find_after_race,
        ):
            conversation = get_or_create_conversation(db, channel.id, "IGSID_1", T0 + timedelta(minutes=1))

        assert conversation.id == winner.id
        assert as_utc(conversation.last_message_at) == T0 + timedelta(minutes=1)
        assert db.query(Conversation).count() == 1
