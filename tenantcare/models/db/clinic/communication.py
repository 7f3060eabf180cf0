"""
Messaging, calls, support tickets, announcements, AI chat sessions and audit log.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from ..base import EntityMixin, JSONValue, TenantBase, utcnow


class Ticket(TenantBase, EntityMixin):
    __tablename__ = "tickets"

    user_id = Column(String(36), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), default="open", nullable=False, comment="open | in_progress | resolved | closed")
    priority = Column(String(10), default="medium", nullable=False)
    response = Column(Text, default="", nullable=False)


class ActivityLog(TenantBase, EntityMixin):
    """Audit trail entry; `metadata_` is free-form (request method, path, body...)."""

    __tablename__ = "activity_logs"

    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(100), nullable=False)
    details = Column(Text, default="", nullable=False)
    metadata_ = Column("metadata", JSONValue, default=dict, nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)


class Announcement(TenantBase, EntityMixin):
    __tablename__ = "announcements"

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    target_audience = Column(String(20), default="all", nullable=False, comment="all | doctors | patients")
    priority = Column(String(10), default="normal", nullable=False)
    created_by = Column(String(36), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class Conversation(TenantBase, EntityMixin):
    __tablename__ = "conversations"

    participants = Column(JSONValue, default=list, nullable=False)
    last_message = Column(Text, default="", nullable=False)
    last_message_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Message(TenantBase, EntityMixin):
    __tablename__ = "messages"

    conversation_id = Column(String(36), nullable=False, index=True)
    sender_id = Column(String(36), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(10), default="text", nullable=False, comment="text | image | file")
    file_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)


class Call(TenantBase, EntityMixin):
    __tablename__ = "calls"

    caller_id = Column(String(36), nullable=False, index=True)
    receiver_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), default="initiated", nullable=False)
    call_type = Column(String(10), default="video", nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, default=0, nullable=False, comment="Seconds")


class AiChatSession(TenantBase, EntityMixin):
    __tablename__ = "ai_chat_sessions"

    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String(100), default="New Chat", nullable=False)
    messages = Column(JSONValue, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
