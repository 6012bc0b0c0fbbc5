"""Data models for iMessage database records"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional


def _get(row: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Read a column from a sqlite3.Row or dict, tolerating missing columns."""
    try:
        value = row[key]
    except (KeyError, IndexError):
        return default
    return default if value is None and default is not None else value


@dataclass
class Handle:
    """A phone number or email address in the handle table"""
    rowid: int
    id: str
    country: Optional[str] = None
    service: Optional[str] = None
    uncanonicalized_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Handle':
        return cls(
            rowid=_get(row, "ROWID"),
            id=_get(row, "id", ""),
            country=_get(row, "country"),
            service=_get(row, "service"),
            uncanonicalized_id=_get(row, "uncanonicalized_id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Attachment:
    """A file attached to a message"""
    rowid: int
    guid: str
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    transfer_name: Optional[str] = None
    total_bytes: int = 0
    is_outgoing: bool = False
    created_date: int = 0
    start_date: int = 0
    hide_attachment: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Attachment':
        return cls(
            rowid=_get(row, "ROWID"),
            guid=_get(row, "guid", ""),
            filename=_get(row, "filename"),
            mime_type=_get(row, "mime_type"),
            transfer_name=_get(row, "transfer_name"),
            total_bytes=_get(row, "total_bytes", 0),
            is_outgoing=bool(_get(row, "is_outgoing", 0)),
            created_date=_get(row, "created_date", 0),
            start_date=_get(row, "start_date", 0),
            hide_attachment=bool(_get(row, "hide_attachment", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Message:
    """A row of the message table. ``text`` holds the resolved message text."""
    rowid: int
    guid: str
    text: Optional[str]
    handle_id: int = 0
    subject: Optional[str] = None
    service: Optional[str] = None
    account: Optional[str] = None
    date: int = 0
    date_read: int = 0
    date_delivered: int = 0
    is_from_me: bool = False
    is_read: bool = False
    is_sent: bool = False
    is_delivered: bool = False
    is_finished: bool = False
    is_audio_message: bool = False
    cache_roomnames: Optional[str] = None
    attributed_body: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Message':
        return cls(
            rowid=_get(row, "ROWID"),
            guid=_get(row, "guid", ""),
            text=_get(row, "text"),
            handle_id=_get(row, "handle_id", 0),
            subject=_get(row, "subject"),
            service=_get(row, "service"),
            account=_get(row, "account"),
            date=_get(row, "date", 0),
            date_read=_get(row, "date_read", 0),
            date_delivered=_get(row, "date_delivered", 0),
            is_from_me=bool(_get(row, "is_from_me", 0)),
            is_read=bool(_get(row, "is_read", 0)),
            is_sent=bool(_get(row, "is_sent", 0)),
            is_delivered=bool(_get(row, "is_delivered", 0)),
            is_finished=bool(_get(row, "is_finished", 0)),
            is_audio_message=bool(_get(row, "is_audio_message", 0)),
            cache_roomnames=_get(row, "cache_roomnames"),
            attributed_body=_get(row, "attributedBody"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("attributed_body", None)
        return data


@dataclass
class EnrichedMessage(Message):
    """A message with its sender handle and attachments"""
    handle: Optional[Handle] = None
    attachments: List[Attachment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["handle"] = self.handle.to_dict() if self.handle else None
        data["attachments"] = [a.to_dict() for a in self.attachments]
        return data


@dataclass
class Chat:
    """A conversation, either one-to-one or a group"""
    rowid: int
    guid: str
    chat_identifier: str
    service_name: Optional[str] = None
    style: int = 0
    state: int = 0
    account_id: Optional[str] = None
    room_name: Optional[str] = None
    account_login: Optional[str] = None
    display_name: Optional[str] = None
    group_id: Optional[str] = None
    is_archived: bool = False
    last_addressed_handle: Optional[str] = None
    is_filtered: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> 'Chat':
        return cls(
            rowid=_get(row, "ROWID"),
            guid=_get(row, "guid", ""),
            chat_identifier=_get(row, "chat_identifier", ""),
            service_name=_get(row, "service_name"),
            style=_get(row, "style", 0),
            state=_get(row, "state", 0),
            account_id=_get(row, "account_id"),
            room_name=_get(row, "room_name"),
            account_login=_get(row, "account_login"),
            display_name=_get(row, "display_name"),
            group_id=_get(row, "group_id"),
            is_archived=bool(_get(row, "is_archived", 0)),
            last_addressed_handle=_get(row, "last_addressed_handle"),
            is_filtered=bool(_get(row, "is_filtered", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ChatWithParticipants(Chat):
    """A chat together with its participants and, optionally, its latest messages"""
    participants: List[Handle] = field(default_factory=list)
    last_message: Optional[Message] = None
    # Newest first
    recent_messages: List[Message] = field(default_factory=list)

    @classmethod
    def from_chat(
        cls,
        chat: Chat,
        participants: List[Handle],
        last_message: Optional[Message] = None,
        recent_messages: Optional[List[Message]] = None,
    ) -> 'ChatWithParticipants':
        return cls(
            **asdict(chat),
            participants=participants,
            last_message=last_message,
            recent_messages=list(recent_messages or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["participants"] = [p.to_dict() for p in self.participants]
        data["last_message"] = self.last_message.to_dict() if self.last_message else None
        data["recent_messages"] = [m.to_dict() for m in self.recent_messages]
        return data


@dataclass
class MessageFilter:
    """Filter options for querying messages"""
    chat_id: Optional[int] = None
    handle_id: Optional[int] = None
    is_from_me: Optional[bool] = None
    service: Optional[str] = None
    search_text: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


@dataclass
class ChatFilter:
    """Filter options for querying chats"""
    chat_identifier: Optional[str] = None
    display_name: Optional[str] = None
    is_group: Optional[bool] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


@dataclass
class ConversationStats:
    """Message counts and date range for one chat or the whole database"""
    total_messages: int = 0
    sent_messages: int = 0
    received_messages: int = 0
    first_message_date: Optional[datetime] = None
    last_message_date: Optional[datetime] = None


@dataclass
class HandleMessageCounts:
    """Message counts exchanged with a single handle"""
    total: int = 0
    sent: int = 0
    received: int = 0
