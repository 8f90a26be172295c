"""
Property model for sale and rental listings.
Handles property data with location, pricing, categories and relationship management.
"""

from sqlalchemy import String, Text, Integer, Float, Numeric, Enum as SQLEnum, Index, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from propertyhub.database import Base
from propertyhub.utils.slugs import generate_slug, generate_property_slug
from decimal import Decimal
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from propertyhub.models.user import User
    from propertyhub.models.image import PropertyImage
    from propertyhub.models.favorite import Favorite
    from propertyhub.models.appointment import Appointment


class TransactionType(str, enum.Enum):
    """Whether a listing is offered for sale or for rent."""
    SALE = "SALE"
    RENT = "RENT"


class PropertyCategory(str, enum.Enum):
    HOUSE = "HOUSE"
    APARTMENT = "APARTMENT"
    SUITE = "SUITE"
    VILLA = "VILLA"
    PENTHOUSE = "PENTHOUSE"
    DUPLEX = "DUPLEX"
    LOFT = "LOFT"
    LAND = "LAND"
    COMMERCIAL = "COMMERCIAL"
    OFFICE = "OFFICE"
    WAREHOUSE = "WAREHOUSE"
    FARM = "FARM"


class PropertyStatus(str, enum.Enum):
    """Listing lifecycle status."""
    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    SOLD = "SOLD"
    RENTED = "RENTED"


class Property(Base):
    """
    Property model for managing sale and rental listings.
    Includes property details, location data and the owning agent.
    """

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Property listing title"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Detailed property description"
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        index=True,
        comment="Property price in USD"
    )

    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType),
        nullable=False,
        index=True
    )

    category: Mapped[PropertyCategory] = mapped_column(
        SQLEnum(PropertyCategory),
        nullable=False,
        index=True
    )

    status: Mapped[PropertyStatus] = mapped_column(
        SQLEnum(PropertyStatus),
        nullable=False,
        default=PropertyStatus.AVAILABLE,
        index=True
    )

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    area: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Built area in square meters"
    )

    # Location information
    address: Mapped[str] = mapped_column(String(200), nullable=False)

    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    state: Mapped[str] = mapped_column(String(100), nullable=False)

    zip_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the agent who owns this property"
    )

    # Relationships
    agent: Mapped["User"] = relationship(
        "User",
        back_populates="properties",
        lazy="selectin"
    )

    images: Mapped[List["PropertyImage"]] = relationship(
        "PropertyImage",
        back_populates="property_rel",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PropertyImage.order.asc()"
    )

    favorites: Mapped[List["Favorite"]] = relationship(
        "Favorite",
        back_populates="property_rel",
        cascade="all, delete-orphan",
    )

    appointments: Mapped[List["Appointment"]] = relationship(
        "Appointment",
        back_populates="property_rel",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title[:30]}..., price={self.price})>"

    @property
    def slug(self) -> str:
        return generate_slug(self.title)

    @property
    def id_slug(self) -> str:
        """URL parameter combining id and slug, e.g. ``<uuid>-casa-en-el-centro``."""
        return generate_property_slug(self.title, str(self.id))

    @property
    def primary_image(self) -> Optional["PropertyImage"]:
        return self.images[0] if self.images else None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self, include_agent: bool = False, include_images: bool = False) -> dict:
        """
        Convert property to dictionary.

        Args:
            include_agent: Whether to include agent information
            include_images: Whether to include image information

        Returns:
            Dictionary representation of property
        """
        result = {
            "id": str(self.id),
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "price": float(self.price),
            "transaction_type": self.transaction_type.value,
            "category": self.category.value,
            "status": self.status.value,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "area": self.area,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "agent_id": str(self.agent_id),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

        if include_agent and self.agent:
            result["agent"] = self.agent.to_dict()

        if include_images:
            result["images"] = [image.to_dict() for image in self.images]
            result["primary_image"] = self.primary_image.to_dict() if self.primary_image else None

        return result

    def to_summary(self) -> dict:
        """Compact representation used in favorites, search results and map markers."""
        primary = self.primary_image
        return {
            "id": str(self.id),
            "title": self.title,
            "slug": self.slug,
            "price": float(self.price),
            "transaction_type": self.transaction_type.value,
            "category": self.category.value,
            "status": self.status.value,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "area": self.area,
            "city": self.city,
            "state": self.state,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "image_url": primary.url if primary else None,
        }


# Composite indexes for the common search patterns
Index(
    "idx_properties_status_created",
    Property.status,
    Property.created_at.desc()
)

Index(
    "idx_properties_city_price",
    Property.city,
    Property.price,
    Property.status
)

Index(
    "idx_properties_coordinates",
    Property.latitude,
    Property.longitude
)
