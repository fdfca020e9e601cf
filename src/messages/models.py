from sqlalchemy import Table, Column, Boolean, DateTime, ForeignKey, String, Text, true

from links.models import metadata

messages = Table(
    "messages",
    metadata,
    Column("id", String(length=36), primary_key=True),
    Column(
        "link_id",
        String(length=36),
        ForeignKey("links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("text", Text, nullable=False),
    Column("is_safe", Boolean, nullable=True),
    Column("moderation_reason", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, index=True),
    Column("is_anonymous", Boolean, nullable=False, default=True, server_default=true()),
)
