"""Tag model."""

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Tag(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tags"

    name: str = Field(unique=True, nullable=False, index=True)
    # Only supported tags can be sponsored
    supported: bool = Field(default=False, nullable=False)
