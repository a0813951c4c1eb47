import pytest
from django.core.cache import cache

from workhub.chat import accessors
from workhub.chat import cache as room_cache
from workhub.chat.guards import can_access_room
from workhub.chat.models import ChatRoomMembership
from workhub.chat.models import Message
from workhub.chat.services import create_group_room

pytestmark = pytest.mark.django_db


def test_get_or_compute_caches_falsy_values():
    calls = []

    def compute():
        calls.append(1)
        return 0

    assert room_cache.get_or_compute("chat_room_x_probe", 30, compute) == 0
    assert room_cache.get_or_compute("chat_room_x_probe", 30, compute) == 0
    assert len(calls) == 1


def test_delete_prefix_only_touches_matching_keys():
    cache.set("chat_room_a_members", [1])
    cache.set("chat_room_a_unread_count_1", 3)
    cache.set("chat_room_b_members", [2])

    room_cache.delete_prefix(room_cache.room_prefix("a"))

    assert cache.get("chat_room_a_members") is None
    assert cache.get("chat_room_a_unread_count_1") is None
    assert cache.get("chat_room_b_members") == [2]


def test_guard_result_is_cached(room, reader, django_assert_num_queries):
    assert can_access_room(room.pk, reader.pk) is True
    with django_assert_num_queries(0):
        assert can_access_room(room.pk, reader.pk) is True


@pytest.mark.parametrize("room_id", [None, "", "not-a-uuid", 42])
def test_guard_refuses_malformed_ids(room_id, reader):
    assert can_access_room(room_id, reader.pk) is False


def test_room_update_evicts_every_room_key(room, author, reader):
    accessors.members(room.pk)
    accessors.stats(room.pk)
    accessors.unread_count(room.pk, reader.pk)
    can_access_room(room.pk, author.pk)
    prefix = room_cache.room_prefix(room.pk)
    assert cache.keys(f"{prefix}*")

    room.name = "Renamed"
    room.save()

    assert cache.keys(f"{prefix}*") == []


def test_room_destroy_evicts_every_room_key(room, author, reader):
    accessors.members(room.pk)
    accessors.last_message(room.pk)
    can_access_room(room.pk, reader.pk)
    prefix = room_cache.room_prefix(room.pk)

    room.delete()

    assert cache.keys(f"{prefix}*") == []
    assert can_access_room(room.pk, reader.pk) is False


def test_membership_change_evicts_room_keys(room, outsider):
    assert can_access_room(room.pk, outsider.pk) is False

    ChatRoomMembership.objects.create(room=room, user=outsider)

    assert can_access_room(room.pk, outsider.pk) is True


def test_other_rooms_keep_their_entries(room, author, reader):
    other = create_group_room("Other", author, [reader.pk])
    accessors.members(other.pk)

    room.delete()

    assert cache.get(room_cache.members_key(other.pk)) is not None


def test_new_message_refreshes_derived_views_after_commit(
    room,
    author,
    reader,
    django_capture_on_commit_callbacks,
):
    assert accessors.unread_count(room.pk, reader.pk) == 0
    assert accessors.last_message(room.pk) is None
    assert accessors.stats(room.pk)["message_count"] == 0

    with django_capture_on_commit_callbacks() as callbacks:
        message = Message.objects.create(room=room, user=author, content="fresh")
        # Views stay cached until the row commits.
        assert cache.get(room_cache.last_message_key(room.pk), "miss") is None
        assert cache.get(room_cache.unread_count_key(room.pk, reader.pk)) == 0

    for callback in callbacks:
        callback()

    assert accessors.unread_count(room.pk, reader.pk) == 1
    assert accessors.last_message(room.pk)["id"] == str(message.pk)
    assert accessors.stats(room.pk)["message_count"] == 1


def test_unread_count_excludes_own_and_read(room, author, reader):
    Message.objects.create(room=room, user=author, content="a")
    Message.objects.create(room=room, user=author, content="b", read=True)
    Message.objects.create(room=room, user=reader, content="c")

    assert accessors.unread_count(room.pk, reader.pk) == 1
    assert accessors.unread_count(room.pk, author.pk) == 1


def test_members_snapshot(room, author, reader):
    members = accessors.members(room.pk)
    assert {(m["id"], m["role"]) for m in members} == {
        (author.pk, "admin"),
        (reader.pk, "member"),
    }
    assert {m["name"] for m in members} == {"Ada Lovelace", "Grace Hopper"}


def test_stats_counts_attachments(room, author):
    Message.objects.create(room=room, user=author, content="plain")
    Message.objects.create(room=room, user=author, attachment="chat/x/y/a.txt")

    stats = accessors.stats(room.pk)

    assert stats["message_count"] == 2  # noqa: PLR2004
    assert stats["attachment_count"] == 1
    assert stats["member_count"] == 2  # noqa: PLR2004
    assert stats["last_activity"] is not None


def test_online_count_follows_presence(room, author, reader):
    assert accessors.online_count(room.pk) == 0

    room_cache.set_presence(room.pk, author.pk, online=True)
    room_cache.set_presence(room.pk, reader.pk, online=True)
    assert accessors.online_count(room.pk) == 2  # noqa: PLR2004

    room_cache.set_presence(room.pk, reader.pk, online=False)
    assert accessors.online_count(room.pk) == 1


def test_presence_survives_room_eviction(room, author):
    room_cache.set_presence(room.pk, author.pk, online=True)
    room_cache.invalidate_room(room.pk)
    assert accessors.online_count(room.pk) == 1
