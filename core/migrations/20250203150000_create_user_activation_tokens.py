"""Create the user_activation_tokens table.

used_at is written exactly once (NULL -> timestamp) by a conditional UPDATE;
see auth/store.py mark_activation_token_used().
"""

from sqlalchemy import Column, Index, MetaData, String, Table


def up(conn) -> None:
    metadata = MetaData()
    tokens = Table(
        "user_activation_tokens",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("user_id", String(36), nullable=False),
        Column("used_at", String(32)),
        Column("expires_at", String(32), nullable=False),
        Column("created_at", String(32), nullable=False),
        Column("updated_at", String(32), nullable=False),
        Index("ix_user_activation_tokens_user_id", "user_id"),
    )
    tokens.create(conn)
