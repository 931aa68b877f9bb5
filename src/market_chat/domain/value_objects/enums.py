from __future__ import annotations

from enum import StrEnum


class AccountRole(StrEnum):
    USER = "user"
    WORKER = "worker"
    ADMIN = "admin"


class AccountStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AttachmentKind(StrEnum):
    IMAGE = "image"
    PDF = "pdf"
    OTHER = "other"


class PresenceStatus(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"


class ServerEvent(StrEnum):
    """Event names pushed to clients. Part of the wire contract."""

    NEW_MESSAGE = "new_message"
    MESSAGE_NOTIFICATION = "message_notification"
    NEW_CONVERSATION = "new_conversation"
    MESSAGE_READ = "message_read"
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"
    USER_TYPING = "user_typing"
    USER_STATUS = "user_status"
    PING = "ping"
    PONG = "pong"


class ClientEvent(StrEnum):
    JOIN_CONVERSATION = "join_conversation"
    LEAVE_CONVERSATION = "leave_conversation"
    SEND_MESSAGE = "send_message"
    TYPING = "typing"
    MARK_READ = "mark_read"
    USER_ACTIVITY = "user_activity"
    PING = "ping"
    PONG = "pong"
