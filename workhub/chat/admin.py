from django.contrib import admin

from workhub.chat import models


class ChatRoomMembershipInline(admin.TabularInline):
    model = models.ChatRoomMembership
    extra = 0
    raw_id_fields = ["user"]


@admin.register(models.ChatRoom)
class ChatRoomAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "is_direct_message", "created_at", "updated_at"]
    search_fields = ["name", "direct_key"]
    list_filter = ["is_direct_message", "created_at"]
    inlines = [ChatRoomMembershipInline]


@admin.register(models.Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ["id", "room", "user", "read", "created_at"]
    search_fields = ["content", "attachment_name"]
    list_filter = ["read", "created_at"]
    raw_id_fields = ["room", "user"]
    readonly_fields = ["content", "read_at", "created_at", "updated_at"]
