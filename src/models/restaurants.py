"""
Pydantic models for MongoDB 'restaurants' collection.

average_rating, review_count and ranking_score are derived from the reviews
and only written by the rating aggregation and ranking services.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.common import PyObjectId


class Restaurant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: PyObjectId = Field(alias="_id")
    name: str
    category_id: PyObjectId | None = None
    approved: bool = False
    average_rating: float = 0.0
    review_count: int = Field(0, ge=0)
    ranking_score: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None
