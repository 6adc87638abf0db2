"""Load sample restaurants and reviews into MongoDB."""

import json
from datetime import datetime, timezone

from bson import ObjectId

from src.config import DATA_DIR
from src.db.mongodb_client import RESTAURANTS, REVIEWS, mongo_client
from src.services.ranking_service import ranking_service

OBJECT_ID_FIELDS = ("_id", "restaurant_id", "user_id", "category_id")
DATE_FIELDS = ("created_at", "updated_at")


def _prepare(doc: dict) -> dict:
    """Convert string ids and ISO dates of a JSON document to their BSON types."""
    doc = dict(doc)
    for field in OBJECT_ID_FIELDS:
        if doc.get(field):
            doc[field] = ObjectId(doc[field])
    for field in ("liked_by", "disliked_by"):
        if field in doc:
            doc[field] = [ObjectId(uid) for uid in doc[field]]
    for field in DATE_FIELDS:
        if isinstance(doc.get(field), str):
            doc[field] = datetime.fromisoformat(doc[field])
    return doc


class DocumentLoader:
    def __init__(self):
        self.client = mongo_client
        self.data_dir = DATA_DIR

    def _read(self, filename: str) -> list[dict]:
        path = self.data_dir / filename
        with open(path, encoding="utf-8") as f:
            return [_prepare(doc) for doc in json.load(f)]

    def load_restaurants(self):
        """Load restaurant documents into MongoDB."""
        col = self.client.get_collection(RESTAURANTS)
        col.delete_many({})
        docs = self._read("restaurants.json")
        now = datetime.now(timezone.utc)
        for doc in docs:
            doc.setdefault("approved", True)
            doc.setdefault("created_at", now)
            # Derived fields are filled in by the ranking recalculation
            doc.update({"average_rating": 0.0, "review_count": 0, "ranking_score": 0.0, "updated_at": now})
        if docs:
            col.insert_many(docs)
        print(f"Loaded {len(docs)} restaurants into MongoDB")

    def load_reviews(self):
        """Load review documents into MongoDB."""
        col = self.client.get_collection(REVIEWS)
        col.delete_many({})
        docs = self._read("reviews.json")
        now = datetime.now(timezone.utc)
        for doc in docs:
            doc.setdefault("comment", "")
            doc.setdefault("liked_by", [])
            doc.setdefault("disliked_by", [])
            # Reactions by the author are dropped
            doc["liked_by"] = [uid for uid in doc["liked_by"] if uid != doc["user_id"]]
            doc["disliked_by"] = [uid for uid in doc["disliked_by"] if uid != doc["user_id"] and uid not in doc["liked_by"]]
            doc["like_count"] = len(doc["liked_by"])
            doc["dislike_count"] = len(doc["disliked_by"])
            doc.setdefault("created_at", now)
            doc.setdefault("updated_at", doc["created_at"])
        if docs:
            col.insert_many(docs)
        print(f"Loaded {len(docs)} reviews into MongoDB")

    def load_all(self):
        """Execute all document loading tasks."""
        self.client.create_indexes()
        self.load_restaurants()
        self.load_reviews()
        summary = ranking_service.recalculate_all_rankings()
        print(f"Recalculated rankings for {summary['updated']} restaurants")
        print("Document data loading complete!")


if __name__ == "__main__":
    loader = DocumentLoader()
    loader.load_all()
