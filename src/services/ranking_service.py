"""Restaurant ranking: weighted score from rating, reactions and recency."""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any

from pymongo import DESCENDING

from src.config import CACHE_TTL, RANKING_DECIMALS, RANKING_WEIGHTS, RATING_MAX
from src.db.mongodb_client import RESTAURANTS, REVIEWS, mongo_client
from src.db.redis_client import redis_client
from src.db.transactions import transaction_coordinator
from src.models import Restaurant
from src.services.exceptions import InvalidRequestError, RestaurantNotFoundError
from src.services.rating_aggregation import recompute_average
from src.utils.helpers import to_object_id

logger = logging.getLogger(__name__)

RANKING_CACHE_PREFIX = "ranking:"

# (max age in days, score) steps for recent reviews
RECENCY_STEPS = [(7, 1.0), (30, 0.8), (90, 0.5)]
RECENCY_HORIZON_DAYS = 365


def like_ratio(total_likes: int, total_dislikes: int) -> float:
    """Share of likes among all reactions, 0.5 when there are none."""
    total = total_likes + total_dislikes
    if total == 0:
        return 0.5
    return total_likes / total


def recency_score(last_review_at: datetime | None, now: datetime | None = None) -> float:
    """
    Score in [0, 1] for how recent the last review is.

    1.0 up to a week, 0.8 up to a month, 0.5 up to three months, then a
    linear decay reaching 0 a year after the last review. No review at all
    scores 0.
    """
    if last_review_at is None:
        return 0.0

    now = now or datetime.now(timezone.utc)
    if last_review_at.tzinfo is None:
        last_review_at = last_review_at.replace(tzinfo=timezone.utc)
    days = (now - last_review_at).total_seconds() / 86400

    for max_days, score in RECENCY_STEPS:
        if days <= max_days:
            return score
    return min(RECENCY_STEPS[-1][1], max(0.0, 1 - days / RECENCY_HORIZON_DAYS))


def compute_ranking(
    average_rating: float,
    total_likes: int,
    total_dislikes: int,
    last_review_at: datetime | None,
    now: datetime | None = None,
    weights: dict[str, float] | None = None,
) -> float:
    """
    Weighted ranking score on the rating scale.

    The like ratio and recency score are scaled to [0, RATING_MAX] so all
    three terms share the range of the average rating before weighting.
    """
    weights = weights or RANKING_WEIGHTS
    score = (
        (average_rating or 0.0) * weights["rating"]
        + like_ratio(total_likes, total_dislikes) * RATING_MAX * weights["likes_ratio"]
        + recency_score(last_review_at, now) * RATING_MAX * weights["recency"]
    )
    return round(score, RANKING_DECIMALS)


def review_statistics(restaurant_id: str) -> dict[str, Any]:
    """Aggregate review statistics for one restaurant."""
    pipeline = [
        {"$match": {"restaurant_id": to_object_id(restaurant_id, "restaurant id")}},
        {
            "$group": {
                "_id": None,
                "total_reviews": {"$sum": 1},
                "average_rating": {"$avg": "$rating"},
                "total_likes": {"$sum": "$like_count"},
                "total_dislikes": {"$sum": "$dislike_count"},
                "last_review_at": {"$max": "$created_at"},
            }
        },
    ]
    results = list(mongo_client.get_collection(REVIEWS).aggregate(pipeline))
    if not results:
        return {
            "total_reviews": 0,
            "average_rating": 0.0,
            "total_likes": 0,
            "total_dislikes": 0,
            "last_review_at": None,
        }

    stats = results[0]
    stats.pop("_id", None)
    stats["average_rating"] = stats.get("average_rating") or 0.0
    return stats


class RankingService:
    def __init__(self):
        self.cache_ttl = CACHE_TTL
        self.cache_hit_count = 0
        self.cache_miss_count = 0

    def _generate_cache_key(self, params: dict[str, Any]) -> str:
        """Generate a cache key for ranking parameters."""
        params_str = json.dumps(params, sort_keys=True)
        # noinspection PyTypeChecker
        return f"{RANKING_CACHE_PREFIX}{hashlib.md5(params_str.encode()).hexdigest()}"

    def clear_ranking_cache(self) -> bool:
        """Drop cached ranking listings."""
        try:
            deleted = redis_client.delete_prefix(RANKING_CACHE_PREFIX)
            if deleted:
                logger.info(f"Cleared {deleted} ranking cache entries")
            return True
        except Exception as e:
            logger.error(f"Error clearing ranking cache: {e}")
            return False

    def refresh_restaurant_ranking(self, restaurant_id: str) -> float:
        """
        Recompute and store the ranking score of one restaurant.

        Runs outside any unit of work: a failure here leaves the score stale
        but never the average rating.

        Args:
            restaurant_id: Restaurant ID

        Returns:
            New ranking score

        Raises:
            RestaurantNotFoundError: If the restaurant does not exist
        """
        restaurant_oid = to_object_id(restaurant_id, "restaurant id")
        restaurants = mongo_client.get_collection(RESTAURANTS)
        if not restaurants.find_one({"_id": restaurant_oid}, {"_id": 1}):
            raise RestaurantNotFoundError(f"Restaurant {restaurant_id} not found")

        stats = review_statistics(restaurant_id)
        score = compute_ranking(
            stats["average_rating"],
            stats["total_likes"],
            stats["total_dislikes"],
            stats["last_review_at"],
        )

        restaurants.update_one(
            {"_id": restaurant_oid},
            {"$set": {"ranking_score": score, "updated_at": datetime.now(timezone.utc)}},
        )
        self.clear_ranking_cache()

        logger.info(f"Restaurant {restaurant_id} ranking score: {score}")
        return score

    def recalculate_all_rankings(self) -> dict[str, Any]:
        """
        Recompute averages and ranking scores of every approved restaurant.

        Repairs aggregates left inconsistent by concurrent writes in
        non-transactional mode.
        """
        updated = 0
        failed = []
        restaurants = mongo_client.get_collection(RESTAURANTS).find({"approved": True}, {"_id": 1})

        for doc in restaurants:
            restaurant_id = str(doc["_id"])
            try:
                transaction_coordinator.run_unit(lambda uow: recompute_average(restaurant_id, uow))
                self.refresh_restaurant_ranking(restaurant_id)
                updated += 1
            except Exception as e:
                logger.error(f"Error recalculating ranking for restaurant {restaurant_id}: {e}")
                failed.append(restaurant_id)

        return {"success": not failed, "updated": updated, "failed": failed}

    def get_ranking(self, category_id: str | None = None, limit: int = 50, offset: int = 0) -> dict[str, Any]:
        """
        Approved restaurants ordered by ranking score, with caching.

        Args:
            category_id: Category filter (optional)
            limit: Maximum number of results
            offset: Pagination offset

        Returns:
            Dict with restaurants and cache info
        """
        if limit <= 0 or offset < 0:
            raise InvalidRequestError("Limit must be positive and offset cannot be negative")

        query: dict[str, Any] = {"approved": True}
        if category_id:
            query["category_id"] = to_object_id(category_id, "category id")

        cache_key = self._generate_cache_key({"category_id": category_id, "limit": limit, "offset": offset})

        try:
            cached_result = redis_client.get_json(cache_key)
        except Exception as e:
            logger.error(f"Error reading ranking cache: {e}")
            cached_result = None

        if cached_result:
            self.cache_hit_count += 1
            return {**cached_result, "cache_hit": True}

        self.cache_miss_count += 1
        docs = (
            mongo_client.get_collection(RESTAURANTS)
            .find(query)
            .sort([("ranking_score", DESCENDING), ("average_rating", DESCENDING)])
            .skip(offset)
            .limit(limit)
        )
        result = {
            "restaurants": [Restaurant.model_validate(doc).model_dump(mode="json") for doc in docs],
            "limit": limit,
            "offset": offset,
        }

        try:
            redis_client.set_json(cache_key, result, self.cache_ttl)
        except Exception as e:
            logger.error(f"Error caching ranking: {e}")

        return {**result, "cache_hit": False}


# Singleton instance
ranking_service = RankingService()
