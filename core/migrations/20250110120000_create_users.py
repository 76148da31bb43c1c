"""Create the users table.

username and email are unique case-insensitively; the original casing is kept
in the column and the uniqueness is enforced by indexes on lower(...).
"""

from sqlalchemy import Column, MetaData, String, Table, Text, text


def up(conn) -> None:
    metadata = MetaData()
    users = Table(
        "users",
        metadata,
        Column("id", String(36), primary_key=True),  # UUID4
        Column("username", String(30), nullable=False),
        Column("email", String(254), nullable=False),
        Column("password", String(72), nullable=False),  # bcrypt hash
        Column("features", Text, nullable=False, server_default="[]"),  # JSON array
        Column("created_at", String(32), nullable=False),
        Column("updated_at", String(32), nullable=False),
    )
    users.create(conn)
    conn.execute(text("CREATE UNIQUE INDEX uq_users_username_lower ON users (lower(username))"))
    conn.execute(text("CREATE UNIQUE INDEX uq_users_email_lower ON users (lower(email))"))
