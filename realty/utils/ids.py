import uuid


def generate_id() -> str:
    """Opaque string identifier used as primary key for every table."""
    return str(uuid.uuid4())
