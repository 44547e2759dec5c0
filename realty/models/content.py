from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from realty.database import Base
from realty.models.property import utcnow


class Page(Base):
    __tablename__ = "pages"

    id = Column(String(36), primary_key=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    meta_description = Column(String(500), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    sections = relationship("Section", back_populates="page")


class Section(Base):
    __tablename__ = "sections"

    id = Column(String(36), primary_key=True)
    page_id = Column(
        String(36), ForeignKey("pages.id", ondelete="SET NULL"), nullable=True
    )
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    section_type = Column(String(50), nullable=False, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    meta_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    page = relationship("Page", back_populates="sections")

    @property
    def page_title(self):
        return self.page.title if self.page else None


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(String(100), nullable=False)
    color = Column(String(50), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
