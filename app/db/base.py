"""SQLAlchemy base declarative class and metadata utilities."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for notification subsystem models."""

    pass
