"""Shared pytest fixtures: small chat.db and AddressBook databases"""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from imessage_tools.imessage.utils import datetime_to_apple_time

CHAT_DB_SCHEMA = """
CREATE TABLE handle (
    ROWID INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL,
    country TEXT,
    service TEXT NOT NULL,
    uncanonicalized_id TEXT
);
CREATE TABLE message (
    ROWID INTEGER PRIMARY KEY AUTOINCREMENT,
    guid TEXT UNIQUE NOT NULL,
    text TEXT,
    handle_id INTEGER DEFAULT 0,
    subject TEXT,
    service TEXT,
    account TEXT,
    date INTEGER,
    date_read INTEGER,
    date_delivered INTEGER,
    is_from_me INTEGER DEFAULT 0,
    is_read INTEGER DEFAULT 0,
    is_sent INTEGER DEFAULT 0,
    is_delivered INTEGER DEFAULT 0,
    is_finished INTEGER DEFAULT 1,
    is_audio_message INTEGER DEFAULT 0,
    cache_roomnames TEXT,
    attributedBody BLOB
);
CREATE TABLE chat (
    ROWID INTEGER PRIMARY KEY AUTOINCREMENT,
    guid TEXT UNIQUE NOT NULL,
    style INTEGER,
    state INTEGER,
    account_id TEXT,
    chat_identifier TEXT,
    service_name TEXT,
    room_name TEXT,
    account_login TEXT,
    display_name TEXT,
    group_id TEXT,
    is_archived INTEGER DEFAULT 0,
    last_addressed_handle TEXT,
    is_filtered INTEGER DEFAULT 0
);
CREATE TABLE attachment (
    ROWID INTEGER PRIMARY KEY AUTOINCREMENT,
    guid TEXT UNIQUE NOT NULL,
    created_date INTEGER DEFAULT 0,
    start_date INTEGER DEFAULT 0,
    filename TEXT,
    mime_type TEXT,
    transfer_name TEXT,
    total_bytes INTEGER DEFAULT 0,
    is_outgoing INTEGER DEFAULT 0,
    hide_attachment INTEGER DEFAULT 0
);
CREATE TABLE chat_message_join (
    chat_id INTEGER,
    message_id INTEGER,
    message_date INTEGER DEFAULT 0,
    PRIMARY KEY (chat_id, message_id)
);
CREATE TABLE chat_handle_join (
    chat_id INTEGER,
    handle_id INTEGER,
    UNIQUE (chat_id, handle_id)
);
CREATE TABLE message_attachment_join (
    message_id INTEGER,
    attachment_id INTEGER,
    UNIQUE (message_id, attachment_id)
);
"""

ADDRESSBOOK_SCHEMA = """
CREATE TABLE ZABCDRECORD (
    Z_PK INTEGER PRIMARY KEY,
    Z_ENT INTEGER,
    Z_OPT INTEGER,
    ZUNIQUEID VARCHAR,
    ZFIRSTNAME VARCHAR,
    ZLASTNAME VARCHAR,
    ZMIDDLENAME VARCHAR,
    ZNICKNAME VARCHAR,
    ZORGANIZATION VARCHAR,
    ZDEPARTMENT VARCHAR,
    ZJOBTITLE VARCHAR,
    ZNOTE VARCHAR,
    ZCREATIONDATE TIMESTAMP,
    ZMODIFICATIONDATE TIMESTAMP
);
CREATE TABLE ZABCDPHONENUMBER (
    Z_PK INTEGER PRIMARY KEY,
    ZOWNER INTEGER,
    ZFULLNUMBER VARCHAR,
    ZLABEL VARCHAR
);
CREATE TABLE ZABCDEMAILADDRESS (
    Z_PK INTEGER PRIMARY KEY,
    ZOWNER INTEGER,
    ZADDRESS VARCHAR,
    ZLABEL VARCHAR
);
"""

# 2024-01-15 12:00:00 UTC
BASE_TIME = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

STAGE_ONE_BLOB = b"prefix_NSString______Decoded body____________NSDictionary_suffix_NSNumber_more"


def _apple(offset: timedelta) -> int:
    return datetime_to_apple_time(BASE_TIME + offset)


def build_chat_db(path):
    """
    Create a chat.db with two chats:

    * chat 1, one-to-one with +15551234567: messages 1-3, message 3 stored
      only as an attributedBody blob
    * chat 2, group "Family" with +15551234567 and alice@example.com:
      messages 4-5 on the following day, message 4 with a photo attachment
      and message 5 with an undecodable blob
    """
    conn = sqlite3.connect(str(path))
    conn.executescript(CHAT_DB_SCHEMA)

    conn.executemany(
        "INSERT INTO handle (ROWID, id, country, service, uncanonicalized_id) VALUES (?, ?, ?, ?, ?)",
        [
            (1, "+15551234567", "us", "iMessage", "5551234567"),
            (2, "alice@example.com", "us", "iMessage", None),
        ],
    )

    conn.executemany(
        "INSERT INTO chat (ROWID, guid, style, state, chat_identifier, service_name, display_name) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        [
            (1, "iMessage;-;+15551234567", 45, 3, "+15551234567", "iMessage", None),
            (2, "iMessage;+;chat123456", 43, 3, "chat123456", "iMessage", "Family"),
        ],
    )

    messages = [
        (1, "msg-1", "Hello there", 1, "iMessage", "p:+15550000000", _apple(timedelta(0)), 0, None),
        (2, "msg-2", "Hi back", 1, "iMessage", "p:+15550000000", _apple(timedelta(minutes=1)), 1, None),
        (3, "msg-3", None, 1, "iMessage", "p:+15550000000", _apple(timedelta(minutes=2)), 0, STAGE_ONE_BLOB),
        (4, "msg-4", "Family dinner?", 2, "iMessage", "e:me@icloud.com", _apple(timedelta(days=1)), 0, None),
        (5, "msg-5", None, 2, "SMS", "e:me@icloud.com", _apple(timedelta(days=1, minutes=1)), 1,
         b"random binary data"),
    ]
    conn.executemany(
        "INSERT INTO message (ROWID, guid, text, handle_id, service, account, date, is_from_me, attributedBody) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        messages,
    )

    conn.executemany(
        "INSERT INTO chat_message_join (chat_id, message_id, message_date) VALUES (?, ?, ?)",
        [
            (1 if rowid <= 3 else 2, rowid, date)
            for rowid, _, _, _, _, _, date, _, _ in messages
        ],
    )
    conn.executemany(
        "INSERT INTO chat_handle_join (chat_id, handle_id) VALUES (?, ?)",
        [(1, 1), (2, 1), (2, 2)],
    )

    conn.execute(
        "INSERT INTO attachment (ROWID, guid, filename, mime_type, transfer_name, total_bytes) "
        "VALUES (1, 'att-1', '~/Library/Messages/Attachments/photo.jpg', 'image/jpeg', 'photo.jpg', 2048)"
    )
    conn.execute("INSERT INTO message_attachment_join (message_id, attachment_id) VALUES (4, 1)")

    conn.commit()
    conn.close()
    return path


def build_addressbook_db(path):
    """
    Create an AddressBook database with four contacts and one group row:

    1. John Appleseed (Apple), mobile (555) 123-4567, john@example.com
    2. Jane Quinn Smith "JJ" (Acme Corp), work +44 20 7946 0958
    3. Pizza Palace, organization only, 555-987-6543
    4. a group row without names (not a contact)
    5. johnny Lowercase, lowercase first name
    """
    conn = sqlite3.connect(str(path))
    conn.executescript(ADDRESSBOOK_SCHEMA)

    conn.executemany(
        "INSERT INTO ZABCDRECORD (Z_PK, Z_ENT, Z_OPT, ZUNIQUEID, ZFIRSTNAME, ZLASTNAME, ZMIDDLENAME, "
        "ZNICKNAME, ZORGANIZATION, ZDEPARTMENT, ZJOBTITLE, ZNOTE, ZCREATIONDATE, ZMODIFICATIONDATE) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        [
            (1, 22, 1, "uuid-john", "John", "Appleseed", None, None, "Apple", None, None,
             "Met at WWDC", 0.0, 86400.0),
            (2, 22, 1, "uuid-jane", "Jane", "Smith", "Quinn", "JJ", "Acme Corp", "R&D", "Engineer",
             None, 3600.0, None),
            (3, 22, 1, "uuid-pizza", None, None, None, None, "Pizza Palace", None, None, None, None, None),
            (4, 19, 1, "uuid-group", None, None, None, None, None, None, None, None, None, None),
            (5, 22, 1, "uuid-johnny", "johnny", "Lowercase", None, None, None, None, None, None, None, None),
        ],
    )
    conn.executemany(
        "INSERT INTO ZABCDPHONENUMBER (Z_PK, ZOWNER, ZFULLNUMBER, ZLABEL) VALUES (?, ?, ?, ?)",
        [
            (1, 1, "(555) 123-4567", "_$!<Mobile>!$_"),
            (2, 2, "+44 20 7946 0958", "_$!<Work>!$_"),
            (3, 3, "555-987-6543", "Custom"),
        ],
    )
    conn.executemany(
        "INSERT INTO ZABCDEMAILADDRESS (Z_PK, ZOWNER, ZADDRESS, ZLABEL) VALUES (?, ?, ?, ?)",
        [
            (1, 1, "john@example.com", "_$!<Home>!$_"),
            (2, 2, "jane.smith@work.example", "_$!<Work>!$_"),
        ],
    )

    conn.commit()
    conn.close()
    return path


@pytest.fixture
def chat_db_path(tmp_path):
    return build_chat_db(tmp_path / "chat.db")


@pytest.fixture
def imessage_client(chat_db_path):
    from imessage_tools.imessage.client import IMessageClient

    client = IMessageClient(str(chat_db_path))
    yield client
    client.close()


@pytest.fixture
def addressbook_db_path(tmp_path):
    return build_addressbook_db(tmp_path / "AddressBook-v22.abcddb")


@pytest.fixture
def contacts_database(addressbook_db_path):
    from imessage_tools.contacts.database import ContactsDatabase

    database = ContactsDatabase(str(addressbook_db_path))
    yield database
    database.close()
