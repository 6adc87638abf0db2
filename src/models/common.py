"""
Shared field types for MongoDB documents.
"""

from typing import Annotated

from bson import ObjectId
from pydantic import BeforeValidator


def _object_id_to_str(value):
    return str(value) if isinstance(value, ObjectId) else value


# ObjectId values read from MongoDB surface as their hex string
PyObjectId = Annotated[str, BeforeValidator(_object_id_to_str)]
