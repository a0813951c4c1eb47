from unittest import mock

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from workhub.chat.models import ChatRoom
from workhub.chat.models import ChatRoomMembership
from workhub.chat.models import Message

pytestmark = pytest.mark.django_db


@pytest.fixture
def api(author):
    client = APIClient()
    client.force_authenticate(user=author)
    return client


def _messages_url(room):
    return reverse("api_v1:chat-room-messages", kwargs={"pk": room.pk})


class TestRoomEndpoints:
    def test_requires_authentication(self):
        response = APIClient().get(reverse("api_v1:chat-room-list"))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list_splits_direct_messages_and_channels(self, api, room, author, reader):
        api.post(
            reverse("api_v1:chat-room-list"),
            {"is_direct_message": True, "user_ids": [reader.pk]},
            format="json",
        )
        Message.objects.create(room=room, user=reader, content="unread")

        response = api.get(reverse("api_v1:chat-room-list"))

        assert response.status_code == status.HTTP_200_OK
        [channel] = response.data["channels"]
        [direct] = response.data["direct_messages"]
        assert channel["id"] == str(room.pk)
        assert channel["unread_count"] == 1
        assert channel["last_message"]["content"] == "unread"
        assert {u["id"] for u in direct["users"]} == {author.pk, reader.pk}
        assert direct["name"] == "DM"

    def test_create_group_room(self, api, author, reader):
        response = api.post(
            reverse("api_v1:chat-room-list"),
            {"name": " Design ", "user_ids": [reader.pk]},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED, response.data
        room = ChatRoom.objects.get(pk=response.data["id"])
        assert room.name == "Design"
        assert ChatRoomMembership.objects.get(room=room, user=author).is_admin

    def test_group_room_needs_name(self, api):
        response = api.post(reverse("api_v1:chat-room-list"), {}, format="json")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "name" in response.data

    def test_direct_message_lookup_or_create(self, api, reader):
        url = reverse("api_v1:chat-room-list")
        payload = {"is_direct_message": True, "user_ids": [reader.pk]}

        first = api.post(url, payload, format="json")
        second = api.post(url, payload, format="json")

        assert first.status_code == status.HTTP_201_CREATED
        assert second.status_code == status.HTTP_200_OK
        assert first.data["id"] == second.data["id"]
        assert ChatRoom.objects.direct_messages().count() == 1

    def test_direct_message_needs_one_other_user(self, api, author, reader, outsider):
        url = reverse("api_v1:chat-room-list")
        for user_ids in ([], [author.pk], [reader.pk, outsider.pk]):
            response = api.post(
                url,
                {"is_direct_message": True, "user_ids": user_ids},
                format="json",
            )
            assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_users_are_refused(self, api):
        response = api.post(
            reverse("api_v1:chat-room-list"),
            {"name": "Ghosts", "user_ids": [987654]},
            format="json",
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "user_ids" in response.data

    def test_members_and_stats(self, api, room, author):
        Message.objects.create(room=room, user=author, content="hi")

        members = api.get(reverse("api_v1:chat-room-members", kwargs={"pk": room.pk}))
        stats = api.get(reverse("api_v1:chat-room-stats", kwargs={"pk": room.pk}))

        assert members.status_code == status.HTTP_200_OK
        assert len(members.data) == 2  # noqa: PLR2004
        assert stats.data["message_count"] == 1
        assert stats.data["member_count"] == 2  # noqa: PLR2004
        assert stats.data["online_count"] == 0

    def test_malformed_room_id_is_not_found(self, api):
        response = api.get("/api/v1/chat-rooms/not-a-uuid/")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestMessageEndpoints:
    def test_post_json_message(self, api, room, author):
        response = api.post(
            _messages_url(room),
            {"content": "<b>hello</b><img src=x>"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED, response.data
        assert response.data["content"] == "<b>hello</b>"
        assert response.data["user_name"] == "Ada Lovelace"
        assert response.data["user"] == {"id": author.pk, "name": "Ada Lovelace"}
        assert response.data["chat_room_id"] == str(room.pk)
        assert response.data["attachment_url"] is None

    def test_post_multipart_attachment(self, api, room):
        upload = SimpleUploadedFile("report.pdf", b"%PDF-1.4", content_type="application/pdf")

        response = api.post(
            _messages_url(room),
            {"content": "", "attachment": upload},
            format="multipart",
        )

        assert response.status_code == status.HTTP_201_CREATED, response.data
        assert response.data["attachment_name"] == "report.pdf"
        assert response.data["attachment_content_type"] == "application/pdf"
        assert "/api/v1/chat/attachments/" in response.data["attachment_url"]

    def test_rejection_carries_code_and_field(self, api, room):
        response = api.post(_messages_url(room), {"content": "  "}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["code"] == "empty_message"
        assert response.data["content"]

    def test_blocked_attachment_is_rejected(self, api, room):
        upload = SimpleUploadedFile("malware.exe", b"MZ", content_type="image/png")

        response = api.post(
            _messages_url(room),
            {"content": "pic", "attachment": upload},
            format="multipart",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["code"] == "filename_blocked"
        assert response.data["attachment"]
        assert not Message.objects.exists()

    def test_history_is_paginated_newest_first(self, api, room, reader):
        for i in range(3):
            Message.objects.create(room=room, user=reader, content=f"m{i}")

        with mock.patch("workhub.chat.api.views.enqueue_mark_read") as enqueue:
            response = api.get(_messages_url(room), {"per_page": 2})

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 3  # noqa: PLR2004
        assert [m["content"] for m in response.data["results"]] == ["m2", "m1"]
        assert response.data["next"]
        enqueue.assert_called_once()

    def test_history_marks_messages_read(
        self,
        api,
        room,
        reader,
        django_capture_on_commit_callbacks,
    ):
        Message.objects.create(room=room, user=reader, content="for you")

        with django_capture_on_commit_callbacks(execute=True):
            response = api.get(_messages_url(room))

        assert response.status_code == status.HTTP_200_OK
        assert Message.objects.get().read is True

    def test_read_all(self, api, room, reader, django_capture_on_commit_callbacks):
        Message.objects.create(room=room, user=reader, content="a")
        Message.objects.create(room=room, user=reader, content="b")

        with django_capture_on_commit_callbacks(execute=True):
            response = api.post(
                reverse("api_v1:chat-room-read-all", kwargs={"pk": room.pk}),
            )

        assert response.status_code == status.HTTP_202_ACCEPTED
        assert not Message.objects.filter(read=False).exists()

    def test_stored_message_is_broadcast_after_commit(
        self,
        api,
        room,
        django_capture_on_commit_callbacks,
    ):
        with mock.patch("workhub.realtime.events.chat.emit_event_to_room") as emit:
            with django_capture_on_commit_callbacks(execute=True):
                response = api.post(_messages_url(room), {"content": "hey"}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        emit.assert_called_once()
        stream, event, payload = emit.call_args.args
        assert stream == f"chat_room_{room.pk}"
        assert event == "new_message"
        assert payload["id"] == response.data["id"]
        assert payload["user"]["name"] == "Ada Lovelace"

    def test_rejected_message_is_not_broadcast(
        self,
        api,
        room,
        django_capture_on_commit_callbacks,
    ):
        with mock.patch("workhub.realtime.events.chat.emit_event_to_room") as emit:
            with django_capture_on_commit_callbacks(execute=True):
                api.post(_messages_url(room), {"content": ""}, format="json")
        emit.assert_not_called()

    def test_broadcast_failure_does_not_fail_the_request(
        self,
        api,
        room,
        django_capture_on_commit_callbacks,
    ):
        with mock.patch(
            "workhub.realtime.events.chat.emit_event_to_room",
            side_effect=ConnectionError("socket server down"),
        ):
            with django_capture_on_commit_callbacks(execute=True):
                response = api.post(_messages_url(room), {"content": "hey"}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert Message.objects.count() == 1
