"""Review lifecycle: create, edit, delete and react, keeping restaurant aggregates in sync."""

import logging
import math
from datetime import datetime, timezone
from typing import Any

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from src.config import RATING_MAX, RATING_MIN
from src.db.mongodb_client import RESTAURANTS, REVIEWS, mongo_client
from src.db.transactions import NO_TRANSACTION, UnitOfWork, transaction_coordinator
from src.models import Review
from src.services.exceptions import (
    DuplicateReviewError,
    InvalidRatingError,
    InvalidRequestError,
    RestaurantNotFoundError,
    ReviewNotFoundError,
    ReviewsServiceError,
    UnauthorizedReviewActionError,
)
from src.services.ranking_service import ranking_service, review_statistics
from src.services.rating_aggregation import recompute_average
from src.services.reaction_service import ReactionKind, ReactionState, find_review, reaction_state, toggle_reaction
from src.utils.helpers import canonical_id, to_object_id

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {"created_at", "updated_at", "rating", "like_count", "dislike_count"}
REACTION_LABELS = {ReactionState.LIKED: ReactionKind.LIKE.value, ReactionState.DISLIKED: ReactionKind.DISLIKE.value}


def _failure(error: ReviewsServiceError) -> dict[str, Any]:
    return {"success": False, "message": str(error), "error": error.code}


def _validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not RATING_MIN <= rating <= RATING_MAX:
        raise InvalidRatingError(f"Rating must be between {RATING_MIN} and {RATING_MAX}")
    return rating


class ReviewService:
    def __init__(self):
        self.coordinator = transaction_coordinator

    def _refresh_ranking(self, restaurant_id: str):
        """Refresh the ranking score; failures leave it stale and are only logged."""
        try:
            ranking_service.refresh_restaurant_ranking(restaurant_id)
        except Exception as e:
            logger.error(f"Error refreshing ranking for restaurant {restaurant_id}: {e}")

    def _check_can_modify(self, review: Review, user_id: str, is_admin: bool):
        if review.user_id != canonical_id(user_id, "user id") and not is_admin:
            raise UnauthorizedReviewActionError("You cannot modify this review")

    def create_review(self, user_id: str, restaurant_id: str, rating: int, comment: str = "") -> dict[str, Any]:
        """
        Create a review and update the restaurant's average rating.

        Args:
            user_id: Author ID
            restaurant_id: Reviewed restaurant ID
            rating: Rating within the rating scale
            comment: Optional text

        Returns:
            Dict with operation result and the created review
        """
        try:
            _validate_rating(rating)
            restaurant_oid = to_object_id(restaurant_id, "restaurant id")
            user_oid = to_object_id(user_id, "user id")

            def create(uow: UnitOfWork) -> Review:
                options = uow.options()
                reviews = mongo_client.get_collection(REVIEWS)

                restaurant = mongo_client.get_collection(RESTAURANTS).find_one(
                    {"_id": restaurant_oid, "approved": True}, {"_id": 1}, **options
                )
                if not restaurant:
                    raise RestaurantNotFoundError("Restaurant does not exist or is not approved")

                existing = reviews.find_one({"restaurant_id": restaurant_oid, "user_id": user_oid}, {"_id": 1}, **options)
                if existing:
                    raise DuplicateReviewError("You have already reviewed this restaurant")

                now = datetime.now(timezone.utc)
                doc = {
                    "restaurant_id": restaurant_oid,
                    "user_id": user_oid,
                    "rating": rating,
                    "comment": comment or "",
                    "like_count": 0,
                    "dislike_count": 0,
                    "liked_by": [],
                    "disliked_by": [],
                    "created_at": now,
                    "updated_at": now,
                }
                try:
                    result = reviews.insert_one(doc, **options)
                except DuplicateKeyError as e:
                    raise DuplicateReviewError("You have already reviewed this restaurant") from e
                doc["_id"] = result.inserted_id

                recompute_average(restaurant_id, uow)
                return Review.model_validate(doc)

            review = self.coordinator.run_unit(create)

        except ReviewsServiceError as e:
            return _failure(e)
        except Exception as e:
            logger.error(f"Error creating review: {e}")
            return {"success": False, "message": "Failed to create review", "error": "error"}

        self._refresh_ranking(restaurant_id)
        return {"success": True, "message": "Review created", "review": review.model_dump(mode="json")}

    def get_review(self, review_id: str) -> dict[str, Any]:
        """Get a single review."""
        try:
            review = find_review(review_id, NO_TRANSACTION)
            return {"success": True, "review": review.model_dump(mode="json")}
        except ReviewsServiceError as e:
            return _failure(e)
        except Exception as e:
            logger.error(f"Error getting review: {e}")
            return {"success": False, "message": "Failed to retrieve review", "error": "error"}

    def list_restaurant_reviews(
        self,
        restaurant_id: str,
        limit: int = 50,
        offset: int = 0,
        sort_by: str = "created_at",
        order: str = "desc",
        viewer_id: str | None = None,
    ) -> dict[str, Any]:
        """
        List a restaurant's reviews with pagination.

        Args:
            restaurant_id: Restaurant ID
            limit: Page size
            offset: Pagination offset
            sort_by: Field to sort on
            order: "asc" or "desc"
            viewer_id: When given, each review carries the viewer's reaction

        Returns:
            Dict with reviews and pagination info
        """
        try:
            restaurant_oid = to_object_id(restaurant_id, "restaurant id")
            if viewer_id:
                viewer_id = canonical_id(viewer_id, "viewer id")
            if sort_by not in SORTABLE_FIELDS:
                raise InvalidRequestError(f"Cannot sort reviews by {sort_by!r}")
            if limit <= 0 or offset < 0:
                raise InvalidRequestError("Limit must be positive and offset cannot be negative")

            reviews = mongo_client.get_collection(REVIEWS)
            total = reviews.count_documents({"restaurant_id": restaurant_oid})
            docs = (
                reviews.find({"restaurant_id": restaurant_oid})
                .sort(sort_by, DESCENDING if order == "desc" else ASCENDING)
                .skip(offset)
                .limit(limit)
            )

            items = []
            for doc in docs:
                review = Review.model_validate(doc)
                item = review.model_dump(mode="json")
                if viewer_id:
                    state = reaction_state(review, viewer_id)
                    item["user_reaction"] = REACTION_LABELS.get(state)
                items.append(item)

            page = offset // limit + 1
            total_pages = math.ceil(total / limit)
            return {
                "success": True,
                "reviews": items,
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "total_pages": total_pages,
                    "has_more": page < total_pages,
                },
            }

        except ReviewsServiceError as e:
            return _failure(e)
        except Exception as e:
            logger.error(f"Error listing reviews: {e}")
            return {"success": False, "message": "Failed to list reviews", "error": "error"}

    def update_review(
        self,
        review_id: str,
        user_id: str,
        rating: int | None = None,
        comment: str | None = None,
        is_admin: bool = False,
    ) -> dict[str, Any]:
        """
        Edit a review's rating and/or comment.

        The restaurant average and ranking are only recomputed when the rating
        actually changes.
        """
        try:
            review = find_review(review_id, NO_TRANSACTION)
            self._check_can_modify(review, user_id, is_admin)

            changes: dict[str, Any] = {}
            if comment is not None:
                changes["comment"] = comment
            rating_changed = rating is not None and _validate_rating(rating) != review.rating
            if rating_changed:
                changes["rating"] = rating
            changes["updated_at"] = datetime.now(timezone.utc)

            def update(uow: UnitOfWork) -> Review:
                doc = mongo_client.get_collection(REVIEWS).find_one_and_update(
                    {"_id": to_object_id(review_id, "review id")},
                    {"$set": changes},
                    return_document=ReturnDocument.AFTER,
                    **uow.options(),
                )
                if not doc:
                    raise ReviewNotFoundError(f"Review {review_id} not found")
                if rating_changed:
                    recompute_average(review.restaurant_id, uow)
                return Review.model_validate(doc)

            if rating_changed:
                updated = self.coordinator.run_unit(update)
            else:
                updated = update(NO_TRANSACTION)

        except ReviewsServiceError as e:
            return _failure(e)
        except Exception as e:
            logger.error(f"Error updating review: {e}")
            return {"success": False, "message": "Failed to update review", "error": "error"}

        if rating_changed:
            self._refresh_ranking(review.restaurant_id)
        return {"success": True, "message": "Review updated", "review": updated.model_dump(mode="json")}

    def delete_review(self, review_id: str, user_id: str, is_admin: bool = False) -> dict[str, Any]:
        """Delete a review and update the restaurant's average rating."""
        try:
            review = find_review(review_id, NO_TRANSACTION)
            self._check_can_modify(review, user_id, is_admin)

            def delete(uow: UnitOfWork):
                result = mongo_client.get_collection(REVIEWS).delete_one(
                    {"_id": to_object_id(review_id, "review id")}, **uow.options()
                )
                if result.deleted_count == 0:
                    raise ReviewNotFoundError(f"Review {review_id} not found")
                recompute_average(review.restaurant_id, uow)

            self.coordinator.run_unit(delete)

        except ReviewsServiceError as e:
            return _failure(e)
        except Exception as e:
            logger.error(f"Error deleting review: {e}")
            return {"success": False, "message": "Failed to delete review", "error": "error"}

        self._refresh_ranking(review.restaurant_id)
        return {"success": True, "message": "Review deleted"}

    def react(self, review_id: str, user_id: str, kind: ReactionKind | str) -> dict[str, Any]:
        """
        Toggle a like or dislike on a review.

        Args:
            review_id: Review ID
            user_id: Reacting user ID
            kind: "like" or "dislike"

        Returns:
            Dict with operation result and the updated review
        """
        try:
            try:
                kind = ReactionKind(kind)
            except ValueError:
                raise InvalidRequestError(f"Unknown reaction {kind!r}") from None

            review = self.coordinator.run_unit(lambda uow: toggle_reaction(review_id, user_id, kind, uow))

        except ReviewsServiceError as e:
            return _failure(e)
        except Exception as e:
            logger.error(f"Error reacting to review: {e}")
            return {"success": False, "message": "Failed to register reaction", "error": "error"}

        self._refresh_ranking(review.restaurant_id)
        return {"success": True, "message": f"{kind.value.capitalize()} registered", "review": review.model_dump(mode="json")}

    def get_review_stats(self, restaurant_id: str) -> dict[str, Any]:
        """Review statistics for a restaurant."""
        try:
            return {"success": True, "stats": review_statistics(restaurant_id)}
        except ReviewsServiceError as e:
            return _failure(e)
        except Exception as e:
            logger.error(f"Error getting review stats: {e}")
            return {"success": False, "message": "Failed to retrieve review stats", "error": "error"}


# Singleton instance
review_service = ReviewService()
