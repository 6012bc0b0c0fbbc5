"""
iMessage SDK for imessage_tools.

This package provides read-only access to the macOS Messages database
(chat.db), including recovery of message text from attributedBody blobs.
"""

from .client import IMessageClient
from .decoder import (
    AttributedBodyDecoder,
    DecodeOutcome,
    DecodeResult,
    decode,
    diagnose,
    extract_message_text,
)
from .formatting import format_chat, format_message
from .models import (
    Attachment,
    Chat,
    ChatFilter,
    ChatWithParticipants,
    ConversationStats,
    EnrichedMessage,
    Handle,
    HandleMessageCounts,
    Message,
    MessageFilter,
)
from .utils import (
    apple_time_to_datetime,
    datetime_to_apple_time,
    format_handle,
    is_group_chat,
)

__all__ = [
    # Client
    'IMessageClient',

    # attributedBody decoding
    'AttributedBodyDecoder',
    'DecodeOutcome',
    'DecodeResult',
    'decode',
    'diagnose',
    'extract_message_text',

    # Models
    'Attachment',
    'Chat',
    'ChatFilter',
    'ChatWithParticipants',
    'ConversationStats',
    'EnrichedMessage',
    'Handle',
    'HandleMessageCounts',
    'Message',
    'MessageFilter',

    # Formatting and utilities
    'format_chat',
    'format_message',
    'apple_time_to_datetime',
    'datetime_to_apple_time',
    'format_handle',
    'is_group_chat',
]
