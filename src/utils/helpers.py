"""Small helpers shared by the services."""

from bson import ObjectId

from src.services.exceptions import InvalidIdError


def is_valid_object_id(value) -> bool:
    """Check that value is a 24-character hex ObjectId string or an ObjectId."""
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and ObjectId.is_valid(value)


def to_object_id(value, field: str = "id") -> ObjectId:
    """Convert value to ObjectId or raise InvalidIdError."""
    if not is_valid_object_id(value):
        raise InvalidIdError(f"Invalid {field}: {value!r}")
    return ObjectId(value)


def canonical_id(value, field: str = "id") -> str:
    """Lowercase hex form of an ObjectId, as stored ids are serialised."""
    return str(to_object_id(value, field))


def calculate_average(values: list[float]) -> float:
    """Arithmetic mean, 0.0 for an empty list."""
    if not values:
        return 0.0
    return sum(values) / len(values)
