import uuid
from pathlib import Path

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

DIRECT_MESSAGE_NAME = "DM"


def direct_key_for(user_ids) -> str:
    """Order-independent key identifying the DM room of exactly two users."""
    ids = sorted({int(u) for u in user_ids})
    if len(ids) != 2:  # noqa: PLR2004
        msg = "A direct message needs exactly two distinct users."
        raise ValueError(msg)
    return f"{ids[0]}:{ids[1]}"


# Longer suffixes are dropped so stored paths fit the FileField length.
MAX_STORED_SUFFIX_LENGTH = 16


def attachment_upload_to(instance: "Message", filename: str) -> str:
    """Store uploads under a generated name; ``attachment_name`` keeps the original."""
    suffix = Path(filename).suffix.lower()
    if len(suffix) > MAX_STORED_SUFFIX_LENGTH:
        suffix = ""
    return f"chat/{instance.room_id}/{uuid.uuid4().hex}{suffix}"


class ChatRoomQuerySet(models.QuerySet):
    def direct_messages(self):
        return self.filter(is_direct_message=True)

    def group_chats(self):
        return self.filter(is_direct_message=False)

    def for_user(self, user):
        return self.filter(memberships__user=user)


class ChatRoom(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, blank=True)
    is_direct_message = models.BooleanField(default=False, db_index=True)
    # "<min user id>:<max user id>" for DMs; the unique constraint makes
    # lookup-or-create of a DM atomic.
    direct_key = models.CharField(max_length=64, null=True, blank=True, unique=True)  # noqa: DJ001
    users = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="ChatRoomMembership",
        related_name="chat_rooms",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ChatRoomQuerySet.as_manager()

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(is_direct_message=True) | ~models.Q(name=""),
                name="chat_room_group_requires_name",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name or str(self.pk)

    @property
    def stream_name(self) -> str:
        return f"chat_room_{self.pk}"


class ChatRoomMembership(models.Model):
    class Role(models.TextChoices):
        MEMBER = "member", _("Member")
        ADMIN = "admin", _("Admin")

    room = models.ForeignKey(
        ChatRoom, on_delete=models.CASCADE, related_name="memberships"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_memberships",
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "room"], name="unique_chat_room_membership"
            ),
        ]
        indexes = [
            models.Index(fields=["room", "role"], name="chat_membership_room_role"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.user_id}@{self.room_id} ({self.role})"

    @property
    def is_admin(self) -> bool:
        match self.role:
            case self.Role.ADMIN:
                return True
            case self.Role.MEMBER:
                return False
        msg = f"Unknown membership role {self.role!r}"
        raise ValueError(msg)


class Message(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room = models.ForeignKey(
        ChatRoom, on_delete=models.CASCADE, related_name="messages"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_messages",
    )
    content = models.TextField(blank=True, default="")
    attachment = models.FileField(upload_to=attachment_upload_to, blank=True)
    attachment_name = models.CharField(max_length=255, blank=True)
    attachment_content_type = models.CharField(max_length=255, blank=True)
    attachment_size = models.PositiveBigIntegerField(null=True, blank=True)
    read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["room", "created_at"], name="chat_msg_room_created"),
            models.Index(fields=["user", "created_at"], name="chat_msg_user_created"),
            models.Index(fields=["room", "read"], name="chat_msg_room_read"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Message({self.pk}) in {self.room_id}"

    @property
    def has_attachment(self) -> bool:
        return bool(self.attachment)
