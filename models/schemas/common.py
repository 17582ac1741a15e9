import uuid


def normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


def is_valid_id(value) -> bool:
    """True if value is a canonical UUID string (the id format of every model)."""
    if not isinstance(value, str):
        return False
    try:
        return str(uuid.UUID(value)) == value.lower()
    except ValueError:
        return False
