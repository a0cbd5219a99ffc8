"""SkillRun model - the run ledger.

One row per skill run: inserted as `running` when the run starts and
updated with the terminal status, output and token usage when it ends.
"""

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from pandora.db.session import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class SkillRunStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class SkillRun(Base):
    __tablename__ = "skill_runs"

    __table_args__ = (Index("ix_skill_runs_workspace_skill", "workspace_id", "skill_id"),)

    run_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    skill_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    workspace_id: Mapped[str] = mapped_column(String(128), nullable=False)

    status: Mapped[str] = mapped_column(
        String(16), default=SkillRunStatus.RUNNING.value, nullable=False
    )
    output: Mapped[Any] = mapped_column(JSONType, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_usage: Mapped[dict | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Object with compute, classify, reason token counts",
    )

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<SkillRun(run_id={self.run_id}, skill_id={self.skill_id}, status={self.status})>"
