from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model
from rest_framework import serializers

from workhub.chat import accessors
from workhub.chat.attachments import attachment_url
from workhub.chat.models import ChatRoom
from workhub.chat.models import ChatRoomMembership
from workhub.chat.models import Message
from workhub.users.api.serializers import UserSummarySerializer

User = get_user_model()


class MessageSerializer(serializers.ModelSerializer):
    """Outgoing message shape shared by HTTP responses and socket events."""

    chat_room_id = serializers.UUIDField(source="room_id", read_only=True)
    user_id = serializers.IntegerField(read_only=True)
    user = UserSummarySerializer(read_only=True)
    user_name = serializers.CharField(source="user.display_name", read_only=True)
    attachment_url = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = (
            "id",
            "chat_room_id",
            "user_id",
            "user",
            "user_name",
            "content",
            "read",
            "read_at",
            "created_at",
            "attachment_url",
            "attachment_name",
            "attachment_content_type",
            "attachment_size",
        )
        read_only_fields = fields

    def get_attachment_url(self, obj: Message) -> str | None:
        return attachment_url(obj, self.context.get("request"))


class MessageCreateSerializer(serializers.Serializer):
    """Accepts JSON or multipart input; real validation happens on ingestion."""

    content = serializers.CharField(
        required=False,
        allow_blank=True,
        trim_whitespace=False,
        default="",
    )
    attachment = serializers.FileField(required=False, allow_empty_file=True)


class ChatRoomSerializer(serializers.ModelSerializer):
    users = UserSummarySerializer(many=True, read_only=True)
    unread_count = serializers.SerializerMethodField()
    last_message = serializers.SerializerMethodField()

    class Meta:
        model = ChatRoom
        fields = (
            "id",
            "name",
            "is_direct_message",
            "users",
            "unread_count",
            "last_message",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "is_direct_message",
            "users",
            "created_at",
            "updated_at",
        )

    def get_unread_count(self, obj: ChatRoom) -> int:
        request = self.context.get("request")
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return 0
        return accessors.unread_count(obj.pk, user.pk)

    def get_last_message(self, obj: ChatRoom) -> dict[str, Any] | None:
        return accessors.last_message(obj.pk)

    def validate_name(self, value: str) -> str:
        value = value.strip()
        if not value and not getattr(self.instance, "is_direct_message", False):
            msg = "Group chats need a name."
            raise serializers.ValidationError(msg)
        return value


class ChatRoomCreateSerializer(serializers.Serializer):
    """Create a group chat, or look up / create a direct message.

    - group: ``name`` plus optional ``user_ids``; the creator becomes admin
    - direct message: ``is_direct_message=true`` and exactly one other user
    """

    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    is_direct_message = serializers.BooleanField(required=False, default=False)
    user_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        request = self.context["request"]
        user_ids = {uid for uid in attrs["user_ids"] if uid != request.user.pk}
        found = set(
            User.objects.filter(pk__in=user_ids, is_active=True).values_list(
                "pk",
                flat=True,
            ),
        )
        missing = sorted(user_ids - found)
        if missing:
            raise serializers.ValidationError(
                {"user_ids": [f"Unknown users: {', '.join(map(str, missing))}."]},
            )

        if attrs["is_direct_message"]:
            if len(user_ids) != 1:
                raise serializers.ValidationError(
                    {"user_ids": ["A direct message needs exactly one other user."]},
                )
        elif not (attrs.get("name") or "").strip():
            raise serializers.ValidationError({"name": ["Group chats need a name."]})

        attrs["user_ids"] = sorted(user_ids)
        attrs["name"] = (attrs.get("name") or "").strip()
        return attrs


class AddMemberSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1)
    role = serializers.ChoiceField(
        choices=ChatRoomMembership.Role.choices,
        required=False,
        default=ChatRoomMembership.Role.MEMBER,
    )

    def validate_user_id(self, value: int) -> int:
        if not User.objects.filter(pk=value, is_active=True).exists():
            msg = "Unknown user."
            raise serializers.ValidationError(msg)
        return value


class MemberSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    role = serializers.ChoiceField(choices=ChatRoomMembership.Role.choices)


class RoomStatsSerializer(serializers.Serializer):
    message_count = serializers.IntegerField()
    member_count = serializers.IntegerField()
    attachment_count = serializers.IntegerField()
    last_activity = serializers.DateTimeField(allow_null=True)
    online_count = serializers.IntegerField()
