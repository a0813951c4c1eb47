from drf_spectacular.generators import SchemaGenerator

from config.schema import group_tags


def test_schema_tag_grouping(db):
    generator = SchemaGenerator()
    schema = generator.get_schema(request=None, public=True)
    paths = schema["paths"]
    tags_map = {}
    for candidate in [
        "/api/v1/chat-rooms/",
        "/api/v1/chat-rooms/{id}/messages/",
        "/api/v1/chat-rooms/{id}/messages/read-all/",
        "/api/v1/auth/jwt/create/",
        "/api/v1/users/",
    ]:
        if candidate in paths:
            # pick first available method
            first_op = next(iter(paths[candidate].values()))
            tags_map[candidate] = first_op.get("tags")

    assert tags_map["/api/v1/chat-rooms/"] == ["Chat"]
    assert tags_map["/api/v1/chat-rooms/{id}/messages/"] == ["Chat"]
    assert tags_map["/api/v1/chat-rooms/{id}/messages/read-all/"] == ["Chat"]
    # JWT endpoints are grouped under a dedicated 'JWT Authentication' tag
    assert tags_map["/api/v1/auth/jwt/create/"] == ["JWT Authentication"]
    assert tags_map["/api/v1/users/"] == ["Users"]


def test_group_tags_keeps_declared_tags():
    result = {
        "paths": {
            "/api/v1/chat/attachments/{token}/": {
                "get": {"tags": ["chat"]},
                "parameters": [],
            },
            "/health/": {"get": {"tags": ["health"]}},
        },
        "tags": [{"name": "Chat", "description": "custom"}],
    }

    out = group_tags(result)

    assert out["paths"]["/api/v1/chat/attachments/{token}/"]["get"]["tags"] == ["Chat"]
    assert out["paths"]["/health/"]["get"]["tags"] == ["health"]
    assert out["tags"] == [{"name": "Chat", "description": "custom"}]
