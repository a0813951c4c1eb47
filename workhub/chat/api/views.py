from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import OpenApiResponse
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.pagination import PageNumberPagination
from rest_framework.parsers import FormParser
from rest_framework.parsers import JSONParser
from rest_framework.parsers import MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet

from workhub.chat import accessors
from workhub.chat import services
from workhub.chat.guards import can_access_room
from workhub.chat.models import ChatRoom
from workhub.chat.models import Message
from workhub.chat.tasks import enqueue_mark_read
from workhub.chat.validators import MessageRejected

from .permissions import IsRoomAdmin
from .permissions import IsRoomMember
from .serializers import AddMemberSerializer
from .serializers import ChatRoomCreateSerializer
from .serializers import ChatRoomSerializer
from .serializers import MemberSerializer
from .serializers import MessageCreateSerializer
from .serializers import MessageSerializer
from .serializers import RoomStatsSerializer

logger = logging.getLogger(__name__)

User = get_user_model()

ADMIN_ACTIONS = frozenset(
    {"update", "partial_update", "destroy", "add_member", "remove_member"},
)


class MessagePagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = "per_page"
    max_page_size = 100


@extend_schema_view(
    list=extend_schema(tags=["Chat"]),
    create=extend_schema(tags=["Chat"], request=ChatRoomCreateSerializer),
    retrieve=extend_schema(tags=["Chat"]),
    update=extend_schema(tags=["Chat"]),
    partial_update=extend_schema(tags=["Chat"]),
    destroy=extend_schema(tags=["Chat"]),
)
class ChatRoomViewSet(ModelViewSet):
    """Chat rooms of the authenticated user and the messages inside them.

    - list: the user's rooms split into direct messages and channels
    - create: new group chat, or lookup/create of a direct message
    - retrieve/update/destroy: members see a room, admins change it
    - messages: paginated history (GET) and posting (POST)

    Rooms the user does not belong to answer 404, exactly like missing ones.
    """

    serializer_class = ChatRoomSerializer
    permission_classes = [IsAuthenticated, IsRoomMember]
    pagination_class = None
    http_method_names = ["get", "post", "put", "patch", "delete", "head", "options"]

    def get_queryset(self):
        return (
            ChatRoom.objects.for_user(self.request.user)
            .prefetch_related("users")
            .distinct()
        )

    def get_permissions(self):
        if self.action in ADMIN_ACTIONS:
            return [IsAuthenticated(), IsRoomMember(), IsRoomAdmin()]
        return [p() for p in self.permission_classes]

    def get_object(self):
        room_id = self.kwargs.get(self.lookup_url_kwarg or self.lookup_field)
        if not can_access_room(room_id, self.request.user.pk):
            raise NotFound
        return super().get_object()

    def list(self, request, *args, **kwargs):
        rooms = list(self.get_queryset())
        context = self.get_serializer_context()
        direct = [r for r in rooms if r.is_direct_message]
        channels = [r for r in rooms if not r.is_direct_message]
        return Response(
            {
                "direct_messages": ChatRoomSerializer(
                    direct,
                    many=True,
                    context=context,
                ).data,
                "channels": ChatRoomSerializer(channels, many=True, context=context).data,
            },
        )

    def create(self, request, *args, **kwargs):
        serializer = ChatRoomCreateSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data["is_direct_message"]:
            other = User.objects.get(pk=data["user_ids"][0])
            room, created = services.get_or_create_direct_room(request.user, other)
        else:
            room = services.create_group_room(data["name"], request.user, data["user_ids"])
            created = True

        out = ChatRoomSerializer(room, context=self.get_serializer_context()).data
        return Response(
            out,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(
        tags=["Chat"],
        request=AddMemberSerializer,
        responses={200: MemberSerializer, 201: MemberSerializer},
    )
    @action(detail=True, methods=["post"], url_path="add-member")
    def add_member(self, request, pk=None):
        room = self.get_object()
        serializer = AddMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if room.is_direct_message:
            return Response(
                {"detail": "Members cannot be added to a direct message."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        user = User.objects.get(pk=serializer.validated_data["user_id"])
        membership, created = services.add_member(
            room,
            user,
            role=serializer.validated_data["role"],
        )
        out = {"id": user.pk, "name": user.display_name, "role": membership.role}
        return Response(
            out,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(tags=["Chat"], request=None, responses={204: None})
    @action(
        detail=True,
        methods=["delete"],
        url_path=r"members/(?P<user_id>\d+)",
        url_name="remove-member",
    )
    def remove_member(self, request, pk=None, user_id=None):
        room = self.get_object()
        if room.is_direct_message:
            return Response(
                {"detail": "Members cannot be removed from a direct message."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if int(user_id) == request.user.pk:
            return Response(
                {"detail": "You cannot remove yourself from the chat room."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not services.remove_member(room, int(user_id)):
            raise NotFound
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Chat"], responses=MemberSerializer(many=True))
    @action(detail=True, methods=["get"])
    def members(self, request, pk=None):
        room = self.get_object()
        return Response(accessors.members(room.pk))

    @extend_schema(tags=["Chat"], responses=RoomStatsSerializer)
    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        room = self.get_object()
        payload = dict(accessors.stats(room.pk))
        payload["online_count"] = accessors.online_count(room.pk)
        return Response(payload)

    @extend_schema(
        methods=["GET"],
        tags=["Chat"],
        parameters=[
            OpenApiParameter("page", int),
            OpenApiParameter("per_page", int),
        ],
        responses=MessageSerializer(many=True),
    )
    @extend_schema(
        methods=["POST"],
        tags=["Chat"],
        request=MessageCreateSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Rejected message with reason code"),
        },
    )
    @action(
        detail=True,
        methods=["get", "post"],
        parser_classes=[JSONParser, MultiPartParser, FormParser],
    )
    def messages(self, request, pk=None):
        room = self.get_object()
        if request.method == "POST":
            return self._post_message(request, room)

        queryset = (
            Message.objects.filter(room=room)
            .select_related("user")
            .order_by("-created_at")
        )
        paginator = MessagePagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        data = MessageSerializer(page, many=True, context={"request": request}).data
        # Messages shown to the reader get marked read in the background.
        enqueue_mark_read(room.pk, request.user.pk)
        return paginator.get_paginated_response(data)

    def _post_message(self, request, room: ChatRoom) -> Response:
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            message = services.ingest_message(
                room.pk,
                request.user,
                content=serializer.validated_data.get("content"),
                attachment=serializer.validated_data.get("attachment"),
            )
        except MessageRejected as exc:
            logger.info(
                "Rejected message from user %s in room %s: %s",
                request.user.pk,
                room.pk,
                exc.reason,
            )
            return Response(exc.as_dict(), status=status.HTTP_400_BAD_REQUEST)
        out = MessageSerializer(message, context={"request": request}).data
        return Response(out, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Chat"], request=None, responses={202: None})
    @action(detail=True, methods=["post"], url_path="messages/read-all")
    def read_all(self, request, pk=None):
        room = self.get_object()
        enqueue_mark_read(room.pk, request.user.pk)
        return Response({"status": "queued"}, status=status.HTTP_202_ACCEPTED)
