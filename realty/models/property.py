from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Numeric,
    Boolean,
    DateTime,
    Index,
)
from sqlalchemy.orm import relationship
from realty.database import Base
import enum


def utcnow():
    return datetime.now(timezone.utc)


class TransactionType(str, enum.Enum):
    SALE = "sale"
    RENT = "rent"


class Currency(str, enum.Enum):
    EUR = "EUR"
    USD = "USD"
    BGN = "BGN"


# Listing categories offered by the agency
ALLOWED_PROPERTY_TYPES = (
    "1-СТАЕН",
    "2-СТАЕН",
    "3-СТАЕН",
    "4-СТАЕН",
    "МНОГОСТАЕН",
    "МЕЗОНЕТ",
    "АТЕЛИЕ, ТАВАН",
    "ОФИС",
    "МАГАЗИН",
    "ЗАВЕДЕНИЕ",
    "СКЛАД",
    "ХОТЕЛ",
    "КЪЩА",
    "ВИЛА",
    "ПАРЦЕЛ",
    "ГАРАЖ",
    "ЗЕМЕДЕЛСКА ЗЕМЯ",
    "ПРОИЗВОДСТВЕНО ПОМЕЩЕНИЕ",
    "БИЗНЕС ИМОТ",
)

RESIDENTIAL_PROPERTY_TYPES = (
    "1-СТАЕН",
    "2-СТАЕН",
    "3-СТАЕН",
    "4-СТАЕН",
    "МНОГОСТАЕН",
    "МЕЗОНЕТ",
    "АТЕЛИЕ, ТАВАН",
    "КЪЩА",
    "ВИЛА",
)


class Property(Base):
    __tablename__ = "properties"

    id = Column(String(36), primary_key=True)
    property_code = Column(String(50), unique=True, nullable=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default=Currency.EUR.value, nullable=False)
    transaction_type = Column(String(10), nullable=False, index=True)
    property_type = Column(String(100), nullable=False, index=True)

    # Location
    city_region = Column(String(100), nullable=False, index=True)
    district = Column(String(100), nullable=True)
    address = Column(String(500), nullable=True)

    # Physical details; "not applicable" is NULL, never 0
    area = Column(Numeric(10, 2), nullable=False)
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    floors = Column(Integer, nullable=True)
    floor_number = Column(Integer, nullable=True)
    terraces = Column(Integer, nullable=True)
    construction_type = Column(String(50), nullable=True)
    condition_type = Column(String(50), nullable=True)
    heating = Column(String(50), nullable=True)
    exposure = Column(String(50), nullable=True)
    year_built = Column(Integer, nullable=True)
    furnishing_level = Column(String(50), nullable=True)

    # Amenities
    has_elevator = Column(Boolean, default=False, nullable=False)
    has_garage = Column(Boolean, default=False, nullable=False)
    has_southern_exposure = Column(Boolean, default=False, nullable=False)
    new_construction = Column(Boolean, default=False, nullable=False)

    # Presentation
    featured = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    images = relationship(
        "PropertyImage",
        back_populates="property",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    documents = relationship(
        "Document",
        back_populates="property",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_properties_active_featured", "active", "featured"),
        Index("ix_properties_sort_order", "sort_order"),
    )
