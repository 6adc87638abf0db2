"""Restaurant rating aggregation."""

import logging
from datetime import datetime, timezone

from src.db.mongodb_client import RESTAURANTS, REVIEWS, mongo_client
from src.db.transactions import UnitOfWork
from src.utils.helpers import calculate_average, to_object_id

logger = logging.getLogger(__name__)


def recompute_average(restaurant_id: str, uow: UnitOfWork) -> tuple[float, int]:
    """
    Recalculate and store a restaurant's average rating and review count.

    Must run inside the same unit of work as the write that changed the
    restaurant's reviews, so the average is read after that write. Only call
    it when a review was created or deleted or its rating changed.

    Args:
        restaurant_id: Restaurant ID
        uow: Active unit of work

    Returns:
        Tuple of (average_rating, review_count)
    """
    restaurant_oid = to_object_id(restaurant_id, "restaurant id")
    options = uow.options()

    ratings = [
        doc["rating"]
        for doc in mongo_client.get_collection(REVIEWS).find(
            {"restaurant_id": restaurant_oid}, {"rating": 1, "_id": 0}, **options
        )
    ]
    average = calculate_average(ratings)
    count = len(ratings)

    mongo_client.get_collection(RESTAURANTS).update_one(
        {"_id": restaurant_oid},
        {"$set": {"average_rating": average, "review_count": count, "updated_at": datetime.now(timezone.utc)}},
        **options,
    )

    logger.debug(f"Restaurant {restaurant_id}: average {average} over {count} reviews")
    return average, count
