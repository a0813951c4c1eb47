from __future__ import annotations

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from tests.permissions.factories import RoomContext
from tests.permissions.factories import create_room
from tests.permissions.factories import create_user
from workhub.chat.services import get_or_create_direct_room

User = get_user_model()

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_OUTSIDER = "outsider"
ROOM_ROLES = [ROLE_ADMIN, ROLE_MEMBER, ROLE_OUTSIDER]


class RoomRoleAPITestCase(APITestCase):
    """Base test case with one group room seen from every membership role."""

    def setUp(self):
        super().setUp()
        self.users: dict[str, User] = {
            role: create_user(f"{role}_user") for role in ROOM_ROLES
        }
        self.group: RoomContext = create_room(
            "Engineering",
            admins=[self.users[ROLE_ADMIN]],
            members=[self.users[ROLE_MEMBER]],
        )
        self.direct, _ = get_or_create_direct_room(
            self.users[ROLE_ADMIN],
            self.users[ROLE_MEMBER],
        )

    # Utilities -------------------------------------------------------------
    def authenticate(self, role: str):
        self.client.force_authenticate(user=self.users[role])

    def assert_http_status(self, response, expected_status: int):
        msg = getattr(response, "data", response)
        assert response.status_code == expected_status, msg

    def get(self, url_name: str, *, role: str, reverse_kwargs=None, **kwargs):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.get(url, **kwargs)

    def post(
        self, url_name: str, *, role: str, payload=None, reverse_kwargs=None, **kwargs
    ):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        kwargs.setdefault("format", "json")
        return self.client.post(url, data=payload or {}, **kwargs)

    def patch(
        self, url_name: str, *, role: str, payload=None, reverse_kwargs=None, **kwargs
    ):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.patch(url, data=payload or {}, format="json", **kwargs)

    def delete(self, url_name: str, *, role: str, reverse_kwargs=None, **kwargs):
        self.authenticate(role)
        url = reverse(url_name, kwargs=reverse_kwargs)
        return self.client.delete(url, **kwargs)

    def assert_allowed(self, response):
        assert response.status_code in (
            status.HTTP_200_OK,
            status.HTTP_201_CREATED,
            status.HTTP_202_ACCEPTED,
            status.HTTP_204_NO_CONTENT,
        ), response.data

    def assert_denied(self, response, code=status.HTTP_403_FORBIDDEN):
        assert response.status_code == code, response.data

    def assert_hidden(self, response):
        self.assert_denied(response, code=status.HTTP_404_NOT_FOUND)

    def room_kwargs(self, room=None):
        return {"pk": (room or self.group.room).pk}
