"""SQLAlchemy ORM models for web-tester persistence."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, LargeBinary, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .database import Base


class Event(Base):
    """One captured request or response.

    The table is append-only: rows are inserted once per captured event and
    never updated.
    """

    __tablename__ = "events"

    event_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    test_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    domain: Mapped[str] = mapped_column(Text, nullable=False, default="")

    payload: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Browser event serialized as JSON"
    )
    body: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"Event(event_id={self.event_id}, test_id={self.test_id}, type={self.type}, domain={self.domain})"
