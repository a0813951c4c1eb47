from django.urls import NoReverseMatch
from django.urls import reverse
from rest_framework import serializers

from workhub.users.models import User


class UserSerializer(serializers.ModelSerializer[User]):
    full_name = serializers.CharField(source="display_name", read_only=True)
    id = serializers.IntegerField(read_only=True)

    # Identity fields are managed by admins, not through the API
    username = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "first_name",
            "last_name",
            "full_name",
            "email",
            "last_seen_at",
            "url",
        ]
        read_only_fields = ["last_seen_at"]

    url = serializers.SerializerMethodField()

    def get_url(self, obj: User) -> str:
        request = self.context.get("request")
        namespace = getattr(
            getattr(request, "resolver_match", None),
            "namespace",
            None,
        )
        candidates = [f"{namespace}:user-detail"] if namespace else []
        candidates.extend(["api_v1:user-detail", "api:user-detail"])

        for view_name in candidates:
            try:
                url = reverse(view_name, kwargs={"username": obj.username})
            except NoReverseMatch:
                continue
            return request.build_absolute_uri(url) if request else url
        return ""


class UserSummarySerializer(serializers.ModelSerializer[User]):
    """Compact ``{id, name}`` shape embedded in chat payloads."""

    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "name"]
