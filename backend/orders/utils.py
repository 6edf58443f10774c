import uuid


def normalize_id(value) -> str:
    """
    Canonical string form of a UUID identifier.

    Values that are not UUIDs are returned as plain strings so callers can
    report them as unknown instead of failing on the format.
    """
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError):
        return str(value)


def is_uuid(value) -> bool:
    try:
        uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return False
    return True
