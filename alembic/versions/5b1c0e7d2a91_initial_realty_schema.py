"""Initial realty schema

Revision ID: 5b1c0e7d2a91
Revises: 
Create Date: 2026-10-18 10:12:44.201733

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '5b1c0e7d2a91'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, properties, images, documents and content tables."""
    from realty.database import Base
    from realty import models  # noqa: F401  register all models with Base.metadata

    bind = op.get_bind()
    Base.metadata.create_all(bind=bind)


def downgrade() -> None:
    """Drop every table (in reverse dependency order)."""
    from realty.database import Base
    from realty import models  # noqa: F401

    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind)
