"""
SQLAlchemy Models

Defines the database schema for persisted deployment server nodes. Each
row stores the server's persisted property map, keyed by qualified
property name.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import String, DateTime, Index, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Deployment Server Node
# ---------------------------------------------------------------------

class DeploymentServer(Base):
    """
    A deployment server definition belonging to a web project.
    """
    __tablename__ = "deployment_server"

    node_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    web_project: Mapped[str] = mapped_column(String(255), nullable=False)
    properties: Mapped[Dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    modified_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("idx_deployment_server_project", "web_project"),
    )
