"""
ProgressionRow: durable per-actor reward progression.
Schema only; `ProgressionRecord` owns the rules.
"""

from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import JSON, BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, TimestampMixin


class ProgressionRow(Base, TimestampMixin):
    """
    One row per actor, mirroring the versioned progression blob.
    """

    __tablename__ = "progression_records"

    actor_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    schema_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    counter: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    milestones_granted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    history: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
