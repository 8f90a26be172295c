"""
Favorite model linking users to the properties they saved.
"""

from sqlalchemy import ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from propertyhub.database import Base
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from propertyhub.models.user import User
    from propertyhub.models.property import Property


class Favorite(Base):
    """A property saved by a user. A user can save a property only once."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_favorites_user_property"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    user: Mapped["User"] = relationship("User", back_populates="favorites")

    property_rel: Mapped["Property"] = relationship(
        "Property",
        back_populates="favorites",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Favorite(user_id={self.user_id}, property_id={self.property_id})>"

    def to_dict(self, include_property: bool = False) -> dict:
        result = {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "property_id": str(self.property_id),
            "created_at": self.created_at.isoformat(),
        }
        if include_property and self.property_rel:
            result["property"] = self.property_rel.to_summary()
        return result
