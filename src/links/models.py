from sqlalchemy import Table, Column, DateTime, MetaData, String

metadata = MetaData()

links = Table(
    "links",
    metadata,
    Column("id", String(length=36), primary_key=True),
    Column("short_id", String(length=32), nullable=False, unique=True, index=True),
    Column("secret_key", String(length=64), nullable=False),
    Column("created_at", DateTime, nullable=False),
)
