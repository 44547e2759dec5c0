from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from realty.database import Base
from realty.models.property import utcnow


class PropertyImage(Base):
    __tablename__ = "property_images"

    id = Column(String(36), primary_key=True)
    property_id = Column(
        String(36), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    image_url = Column(String(1000), nullable=True)  # public relative path
    image_path = Column(String(1000), nullable=True)
    thumbnail_url = Column(String(1000), nullable=True)
    alt_text = Column(String(255), nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_main = Column(Boolean, default=False, nullable=False)
    file_size = Column(Integer, default=0)
    mime_type = Column(String(100), default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    property = relationship("Property", back_populates="images")

    __table_args__ = (
        Index("ix_property_images_property_order", "property_id", "is_main", "sort_order"),
    )
