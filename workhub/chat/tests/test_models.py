import pytest
from django.db import IntegrityError

from workhub.chat.models import ChatRoom
from workhub.chat.models import ChatRoomMembership
from workhub.chat.models import Message
from workhub.chat.models import direct_key_for


def test_direct_key_is_order_independent():
    assert direct_key_for([7, 3]) == direct_key_for([3, 7]) == "3:7"


@pytest.mark.parametrize("ids", [[1], [1, 1], [1, 2, 3], []])
def test_direct_key_needs_two_distinct_users(ids):
    with pytest.raises(ValueError, match="exactly two"):
        direct_key_for(ids)


@pytest.mark.django_db
class TestChatRoom:
    def test_stream_name(self, room):
        assert room.stream_name == f"chat_room_{room.pk}"

    def test_group_requires_name(self):
        with pytest.raises(IntegrityError):
            ChatRoom.objects.create(name="", is_direct_message=False)

    def test_direct_key_is_unique(self):
        ChatRoom.objects.create(name="DM", is_direct_message=True, direct_key="1:2")
        with pytest.raises(IntegrityError):
            ChatRoom.objects.create(
                name="DM",
                is_direct_message=True,
                direct_key="1:2",
            )

    def test_destroy_cascades(self, room, author):
        Message.objects.create(room=room, user=author, content="hi")
        room.delete()
        assert not ChatRoomMembership.objects.exists()
        assert not Message.objects.exists()

    def test_for_user_scopes_rooms(self, room, reader, outsider):
        assert list(ChatRoom.objects.for_user(reader)) == [room]
        assert not ChatRoom.objects.for_user(outsider).exists()


@pytest.mark.django_db
class TestChatRoomMembership:
    def test_unique_per_user_and_room(self, room, reader):
        with pytest.raises(IntegrityError):
            ChatRoomMembership.objects.create(room=room, user=reader)

    def test_is_admin(self, room, author, reader):
        assert ChatRoomMembership.objects.get(room=room, user=author).is_admin
        assert not ChatRoomMembership.objects.get(room=room, user=reader).is_admin

    def test_unknown_role_is_rejected(self, room, reader):
        membership = ChatRoomMembership.objects.get(room=room, user=reader)
        membership.role = "owner"
        with pytest.raises(ValueError, match="Unknown membership role"):
            _ = membership.is_admin


@pytest.mark.django_db
def test_message_defaults(room, author):
    message = Message.objects.create(room=room, user=author, content="hello")
    assert message.read is False
    assert message.read_at is None
    assert message.has_attachment is False
