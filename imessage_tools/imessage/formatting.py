"""Text rendering of messages and chats for tool responses"""

from imessage_tools.imessage.models import Chat, EnrichedMessage, Message
from imessage_tools.imessage.utils import apple_time_to_datetime, format_handle

NO_TEXT_PLACEHOLDER = "[no text]"


def format_timestamp(apple_time: int) -> str:
    return apple_time_to_datetime(apple_time or 0).strftime("%Y-%m-%d %H:%M:%S")


def message_sender(message: Message) -> str:
    if message.is_from_me:
        return "Me"
    handle = getattr(message, "handle", None)
    if handle is not None and handle.id:
        return format_handle(handle.id)
    return "Unknown"


def format_message(message: Message) -> str:
    """Render a message as ``[timestamp] sender: text``"""
    line = f"[{format_timestamp(message.date)}] {message_sender(message)}: {message.text or NO_TEXT_PLACEHOLDER}"

    attachments = message.attachments if isinstance(message, EnrichedMessage) else []
    if attachments:
        line += f" ({len(attachments)} attachment(s))"
    return line


def format_chat(chat: Chat) -> str:
    name = chat.display_name or chat.chat_identifier
    return f"Chat #{chat.rowid}: {name} ({chat.service_name})"
