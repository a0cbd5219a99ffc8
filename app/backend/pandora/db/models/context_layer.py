"""ContextLayer model - per-workspace business context.

Each section is a free-form JSON object edited by workspace admins and read
once at the start of every skill run.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from pandora.db.models.skill_run import JSONType
from pandora.db.session import Base


class ContextLayer(Base):
    __tablename__ = "context_layer"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)

    business_model: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    team_structure: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    goals_and_targets: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    definitions: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    operational_maturity: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
