from django.db.models import Q
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.mixins import ListModelMixin
from rest_framework.mixins import RetrieveModelMixin
from rest_framework.mixins import UpdateModelMixin
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from workhub.users.models import User

from .serializers import UserSerializer


@extend_schema_view(
    list=extend_schema(
        tags=["Users"],
        parameters=[OpenApiParameter("q", str, description="Name/username filter")],
    ),
    retrieve=extend_schema(tags=["Users"]),
    partial_update=extend_schema(tags=["Users"]),
    update=extend_schema(tags=["Users"]),
)
class UserViewSet(RetrieveModelMixin, ListModelMixin, UpdateModelMixin, GenericViewSet):
    """Colleague directory used to pick chat members and DM partners.

    Everyone may list active users; only the user themselves may update
    their own first/last name.
    """

    serializer_class = UserSerializer
    queryset = User.objects.filter(is_active=True).order_by("username")
    lookup_field = "username"
    pagination_class = None

    def get_queryset(self, *args, **kwargs):  # type: ignore[override]
        qs = super().get_queryset()
        if self.action in {"update", "partial_update"}:
            return qs.filter(pk=self.request.user.pk)
        term = (self.request.query_params.get("q") or "").strip()
        if term:
            qs = qs.filter(
                Q(username__icontains=term)
                | Q(name__icontains=term)
                | Q(email__icontains=term)
            )
        return qs

    @action(detail=False)
    def me(self, request):
        serializer = UserSerializer(request.user, context={"request": request})
        return Response(status=status.HTTP_200_OK, data=serializer.data)
