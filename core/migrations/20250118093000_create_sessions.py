"""Create the sessions table."""

from sqlalchemy import Column, Index, MetaData, String, Table


def up(conn) -> None:
    metadata = MetaData()
    sessions = Table(
        "sessions",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("token", String(96), nullable=False, unique=True),
        Column("user_id", String(36), nullable=False),
        Column("expires_at", String(32), nullable=False),
        Column("created_at", String(32), nullable=False),
        Column("updated_at", String(32), nullable=False),
        Index("ix_sessions_user_id", "user_id"),
    )
    sessions.create(conn)
