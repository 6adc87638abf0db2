"""Tests for DocumentLoader."""

import json
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId

from src.db.mongodb_client import RESTAURANTS, REVIEWS
from src.loaders.document_loader import DocumentLoader
from tests.ids import ALICE_ID, AUTHOR_ID, BOB_ID, RESTAURANT_ID


class TestDocumentLoader:
    @pytest.fixture
    def collections(self):
        with patch("src.loaders.document_loader.mongo_client") as mock_mongo:
            collections = {REVIEWS: MagicMock(), RESTAURANTS: MagicMock()}
            mock_mongo.get_collection.side_effect = collections.__getitem__
            yield collections

    @pytest.fixture
    def loader(self, collections, tmp_path):
        loader = DocumentLoader()
        loader.data_dir = tmp_path
        return loader

    def _write(self, path, name, docs):
        (path / name).write_text(json.dumps(docs), encoding="utf-8")

    def test_load_restaurants_resets_derived_fields(self, loader, collections, tmp_path):
        """Test that restaurants start with empty aggregates."""
        self._write(tmp_path, "restaurants.json", [{"_id": RESTAURANT_ID, "name": "La Fonda", "average_rating": 9}])

        loader.load_restaurants()

        inserted = collections[RESTAURANTS].insert_many.call_args.args[0]
        assert inserted[0]["_id"] == ObjectId(RESTAURANT_ID)
        assert inserted[0]["approved"] is True
        assert inserted[0]["average_rating"] == 0.0
        assert inserted[0]["review_count"] == 0

    def test_load_reviews_normalizes_reactions(self, loader, collections, tmp_path):
        """Test that counters follow the member lists and author reactions are dropped."""
        self._write(
            tmp_path,
            "reviews.json",
            [
                {
                    "restaurant_id": RESTAURANT_ID,
                    "user_id": AUTHOR_ID,
                    "rating": 4,
                    "liked_by": [ALICE_ID, AUTHOR_ID],
                    "disliked_by": [BOB_ID, ALICE_ID],
                    "created_at": "2025-09-01T12:00:00+00:00",
                }
            ],
        )

        loader.load_reviews()

        doc = collections[REVIEWS].insert_many.call_args.args[0][0]
        assert doc["liked_by"] == [ObjectId(ALICE_ID)]
        assert doc["disliked_by"] == [ObjectId(BOB_ID)]
        assert (doc["like_count"], doc["dislike_count"]) == (1, 1)
        assert doc["created_at"].year == 2025
        assert doc["updated_at"] == doc["created_at"]

    def test_load_all_recalculates_rankings(self, loader, collections, tmp_path):
        """Test that loading ends with a ranking recalculation."""
        self._write(tmp_path, "restaurants.json", [])
        self._write(tmp_path, "reviews.json", [])

        with patch("src.loaders.document_loader.ranking_service") as mock_ranking:
            mock_ranking.recalculate_all_rankings.return_value = {"success": True, "updated": 0, "failed": []}
            loader.load_all()

        mock_ranking.recalculate_all_rankings.assert_called_once()
        collections[RESTAURANTS].insert_many.assert_not_called()
