from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from realty.database import Base
from realty.models.property import utcnow


class Document(Base):
    __tablename__ = "property_documents"

    id = Column(String(36), primary_key=True)
    property_id = Column(
        String(36),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename = Column(String(255), nullable=False)  # stored name
    original_filename = Column(String(255), nullable=False)
    file_path = Column(String(1000), nullable=False)  # public relative path
    file_size = Column(Integer, default=0)
    mime_type = Column(String(100), default="application/pdf")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    property = relationship("Property", back_populates="documents")
