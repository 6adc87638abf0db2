"""
Pydantic models for MongoDB 'reviews' collection.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.config import RATING_MAX, RATING_MIN
from src.models.common import PyObjectId


class Review(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: PyObjectId = Field(alias="_id")
    restaurant_id: PyObjectId
    user_id: PyObjectId
    rating: int = Field(ge=RATING_MIN, le=RATING_MAX)
    comment: str = ""
    like_count: int = Field(0, ge=0)
    dislike_count: int = Field(0, ge=0)
    liked_by: list[PyObjectId] = []
    disliked_by: list[PyObjectId] = []
    created_at: datetime
    updated_at: datetime
