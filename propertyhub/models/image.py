"""
PropertyImage model for listing photos.
Stores the public URL, alt text and gallery order, plus file metadata for locally stored uploads.
"""

from sqlalchemy import String, Integer, ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from propertyhub.database import Base
import uuid
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from propertyhub.models.property import Property


class PropertyImage(Base):
    """
    Image attached to a property listing.
    Images uploaded through the API carry file metadata; externally hosted images only carry a URL.
    """

    __tablename__ = "property_images"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the property this image belongs to"
    )

    url: Mapped[str] = mapped_column(
        String(1000),
        nullable=False,
        comment="Public URL of the image"
    )

    alt: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Display order for the image gallery"
    )

    # Stored file information, only for uploads
    filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    file_path: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        unique=True,
        comment="Path of the stored file relative to the upload directory"
    )

    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    property_rel: Mapped["Property"] = relationship(
        "Property",
        back_populates="images",
    )

    def __repr__(self) -> str:
        return f"<PropertyImage(id={self.id}, property_id={self.property_id}, order={self.order})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "url": self.url,
            "alt": self.alt,
            "order": self.order,
            "filename": self.filename,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "width": self.width,
            "height": self.height,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


Index(
    "idx_property_images_property_order",
    PropertyImage.property_id,
    PropertyImage.order.asc()
)
