# Import all models so they're registered with Base.metadata
from realty.models.user import User
from realty.models.property import Property
from realty.models.property_image import PropertyImage
from realty.models.document import Document
from realty.models.content import Page, Section, Service

__all__ = [
    "User",
    "Property",
    "PropertyImage",
    "Document",
    "Page",
    "Section",
    "Service",
]
