import pytest

from workhub.chat import accessors
from workhub.chat import cache as room_cache
from workhub.chat.models import Message
from workhub.chat.services import create_group_room
from workhub.chat.services import mark_room_messages_read

pytestmark = pytest.mark.django_db


def _post(room, user, n, prefix="m"):
    return [
        Message.objects.create(room=room, user=user, content=f"{prefix}{i}")
        for i in range(n)
    ]


def test_marks_other_peoples_messages(room, author, reader):
    _post(room, author, 3)

    assert mark_room_messages_read(room.pk, reader.pk) == 3  # noqa: PLR2004

    rows = Message.objects.filter(room=room)
    assert all(m.read for m in rows)
    assert len({m.read_at for m in rows}) == 1


def test_never_marks_own_messages(room, author, reader):
    _post(room, author, 2, prefix="a")
    own = _post(room, reader, 2, prefix="r")

    assert mark_room_messages_read(room.pk, reader.pk) == 2  # noqa: PLR2004

    for message in own:
        message.refresh_from_db()
        assert message.read is False
        assert message.read_at is None


def test_is_idempotent(room, author, reader):
    _post(room, author, 4)

    assert mark_room_messages_read(room.pk, reader.pk) == 4  # noqa: PLR2004
    first_read_at = set(Message.objects.values_list("read_at", flat=True))
    assert mark_room_messages_read(room.pk, reader.pk) == 0
    assert set(Message.objects.values_list("read_at", flat=True)) == first_read_at


def test_batch_limit_takes_oldest_first(room, author, reader):
    messages = _post(room, author, 5)

    assert mark_room_messages_read(room.pk, reader.pk, batch_size=2) == 2  # noqa: PLR2004

    read_ids = set(Message.objects.filter(read=True).values_list("id", flat=True))
    assert read_ids == {messages[0].pk, messages[1].pk}


def test_default_batch_size_comes_from_settings(settings, room, author, reader):
    settings.CHAT_READ_BATCH_SIZE = 3
    _post(room, author, 5)
    assert mark_room_messages_read(room.pk, reader.pk) == 3  # noqa: PLR2004


def test_other_rooms_are_untouched(room, author, reader):
    elsewhere = create_group_room("Elsewhere", author, [reader.pk])
    other = Message.objects.create(room=elsewhere, user=author, content="x")
    _post(room, author, 1)

    mark_room_messages_read(room.pk, reader.pk)

    other.refresh_from_db()
    assert other.read is False


def test_empty_room_reports_zero(room, reader):
    assert mark_room_messages_read(room.pk, reader.pk) == 0


def test_invalidates_unread_count(room, author, reader):
    _post(room, author, 2)
    assert accessors.unread_count(room.pk, reader.pk) == 2  # noqa: PLR2004

    mark_room_messages_read(room.pk, reader.pk)

    key = room_cache.unread_count_key(room.pk, reader.pk)
    assert room_cache.cache.get(key) is None
    assert accessors.unread_count(room.pk, reader.pk) == 0
