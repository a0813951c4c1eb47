"""Permission classes for the Chat API."""

from rest_framework.permissions import BasePermission

from workhub.chat.guards import can_access_room
from workhub.chat.guards import is_room_admin


class IsRoomMember(BasePermission):
    def has_object_permission(self, request, view, obj) -> bool:
        return can_access_room(obj.pk, getattr(request.user, "pk", None))


class IsRoomAdmin(BasePermission):
    message = "Only chat room admins can do this."

    def has_object_permission(self, request, view, obj) -> bool:
        return is_room_admin(obj.pk, getattr(request.user, "pk", None))
