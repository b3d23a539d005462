from django.contrib import admin

from .models import ChatChannel, ChatMessage


class ChatMessageInline(admin.TabularInline):
    model = ChatMessage
    extra = 0
    readonly_fields = ['sender', 'text', 'created_at']


@admin.register(ChatChannel)
class ChatChannelAdmin(admin.ModelAdmin):
    list_display = ['channel_id', 'blood_request', 'created_at']
    search_fields = ['channel_id']
    inlines = [ChatMessageInline]
