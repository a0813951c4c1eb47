import pytest

from workhub.chat.models import ChatRoom
from workhub.chat.models import ChatRoomMembership
from workhub.users.tests.factories import UserFactory


@pytest.fixture
def author(db):
    return UserFactory(first_name="Ada", last_name="Lovelace")


@pytest.fixture
def reader(db):
    return UserFactory(first_name="Grace", last_name="Hopper")


@pytest.fixture
def outsider(db):
    return UserFactory()


@pytest.fixture
def room(author, reader):
    room = ChatRoom.objects.create(name="General")
    ChatRoomMembership.objects.create(
        room=room,
        user=author,
        role=ChatRoomMembership.Role.ADMIN,
    )
    ChatRoomMembership.objects.create(room=room, user=reader)
    return room
