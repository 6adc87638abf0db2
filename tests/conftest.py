"""Shared fixtures for service tests."""

from datetime import datetime, timezone

import pytest
from bson import ObjectId

from tests.ids import AUTHOR_ID, RESTAURANT_ID, REVIEW_ID


@pytest.fixture
def make_review_doc():
    """Build a raw 'reviews' document as MongoDB returns it."""

    def _make(**overrides):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        doc = {
            "_id": ObjectId(REVIEW_ID),
            "restaurant_id": ObjectId(RESTAURANT_ID),
            "user_id": ObjectId(AUTHOR_ID),
            "rating": 4,
            "comment": "Nice place",
            "like_count": 0,
            "dislike_count": 0,
            "liked_by": [],
            "disliked_by": [],
            "created_at": now,
            "updated_at": now,
        }
        doc.update(overrides)
        return doc

    return _make
