from django.contrib import admin

from .models import Message


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("uid", "sender", "receiver", "created_at")
    list_filter = ("created_at",)
    search_fields = ("text", "sender__email", "receiver__email")
    readonly_fields = ("uid", "sender", "receiver", "text", "image", "created_at")
