"""SQLAlchemy ORM models for the shortlink service.

Data Model Layout
=================
::
    url_mapping table
    ├─ id (BIGINT PRIMARY KEY, AUTOINCREMENT)
    ├─ short_id (VARCHAR(44) UNIQUE, NULL for explicit paths)
    ├─ path (VARCHAR(128) UNIQUE NOT NULL)
    ├─ url (TEXT)
    ├─ origin_url (TEXT, destination at creation time)
    ├─ create_time (TIMESTAMPTZ, DEFAULT NOW())
    └─ last_update_time (TIMESTAMPTZ, DEFAULT NOW(), ON UPDATE)

How to Use
===========
**Step 1 — Import**::
    from shortlink.models import UrlMapping

**Step 2 — Build an auto-generated mapping**::
    mapping = UrlMapping(short_id="47DEQp", path="47DEQp",
                         url="https://example.com", origin_url="https://example.com")

Key Behaviours
===============
- path and short_id carry unique constraints; the store relies on them to
  arbitrate concurrent inserts.
- For auto-generated mappings path == short_id.
- origin_url is written once and never updated.

Classes:
    UrlMapping:  A path to destination URL mapping.
"""

import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shortlink.database import Base

__all__ = ["UrlMapping"]


class UrlMapping(Base):
    __tablename__ = "url_mapping"

    # SQLite only autoincrements INTEGER primary keys.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    short_id: Mapped[str | None] = mapped_column(String(44), unique=True, nullable=True)
    path: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    origin_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    create_time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_update_time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<UrlMapping(id={self.id}, path='{self.path}', short_id={self.short_id!r})>"
