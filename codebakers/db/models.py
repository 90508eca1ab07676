"""
Database Models for CodeBakers
==============================

SQLAlchemy models for persisting engineering projects.

A project is stored as one row. Each typed sub-structure (scope, stack,
phase state, decisions, graph, artifacts) has its own JSON column; the
``version`` column backs compare-and-swap saves.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import String, Integer, DateTime, JSON, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class EngineeringProjectModel(Base):
    """One engineering build, stored whole."""
    __tablename__ = "engineering_projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_key: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    project_id: Mapped[str] = mapped_column(String(36))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(String(50))

    # Denormalized for listing without decoding the state blob
    current_phase: Mapped[str] = mapped_column(String(50), default="scoping")
    current_agent: Mapped[str] = mapped_column(String(50), default="orchestrator")
    progress: Mapped[int] = mapped_column(Integer, default=0)

    scope: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    stack: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    state: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    decisions: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    graph: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    artifacts: Mapped[Dict[str, str]] = mapped_column(JSON, default=dict)

    version: Mapped[int] = mapped_column(Integer, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
