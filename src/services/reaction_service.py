"""Like/dislike reactions on reviews.

Every (review, user) pair is in one of three states: NONE, LIKED or DISLIKED.
Reacting with the kind already held toggles it off, reacting with the other
kind switches sides. Each transition is written as a single update so the two
counters never disagree with the member lists.
"""

import logging
from datetime import datetime, timezone
from enum import Enum

from pymongo import ReturnDocument

from src.db.mongodb_client import REVIEWS, mongo_client
from src.db.transactions import UnitOfWork
from src.models import Review
from src.services.exceptions import ReactionConflictError, ReviewNotFoundError, SelfReactionForbiddenError
from src.utils.helpers import canonical_id, to_object_id

logger = logging.getLogger(__name__)


class ReactionKind(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class ReactionState(str, Enum):
    NONE = "none"
    LIKED = "liked"
    DISLIKED = "disliked"


_HELD_STATE = {ReactionKind.LIKE: ReactionState.LIKED, ReactionKind.DISLIKE: ReactionState.DISLIKED}

# state -> (member list, counter)
_FIELDS = {
    ReactionState.LIKED: ("liked_by", "like_count"),
    ReactionState.DISLIKED: ("disliked_by", "dislike_count"),
}


def reaction_state(review: Review, user_id: str) -> ReactionState:
    """Current reaction of user_id on review."""
    user_id = canonical_id(user_id, "user id")
    if user_id in review.liked_by:
        return ReactionState.LIKED
    if user_id in review.disliked_by:
        return ReactionState.DISLIKED
    return ReactionState.NONE


def next_state(current: ReactionState, kind: ReactionKind) -> ReactionState:
    """Transition table for one reaction."""
    target = _HELD_STATE[kind]
    return ReactionState.NONE if current == target else target


def apply_reaction(review: Review, user_id: str, kind: ReactionKind) -> Review:
    """
    Compute the review after user_id reacts with kind. Does not touch the database.

    Raises:
        SelfReactionForbiddenError: If user_id wrote the review
    """
    user_id = canonical_id(user_id, "user id")
    if review.user_id == user_id:
        raise SelfReactionForbiddenError(f"You cannot {kind.value} your own review")

    after = next_state(reaction_state(review, user_id), kind)
    liked_by = [uid for uid in review.liked_by if uid != user_id]
    disliked_by = [uid for uid in review.disliked_by if uid != user_id]
    if after == ReactionState.LIKED:
        liked_by.append(user_id)
    elif after == ReactionState.DISLIKED:
        disliked_by.append(user_id)

    return review.model_copy(
        update={
            "liked_by": liked_by,
            "disliked_by": disliked_by,
            "like_count": len(liked_by),
            "dislike_count": len(disliked_by),
        }
    )


def build_reaction_update(before: Review, after: Review, user_id: str, now: datetime | None = None):
    """
    Build the guarded filter and update document that move user_id's reaction
    from its state in before to its state in after.

    The filter pins the user's current membership, so a concurrent change
    between read and write makes the update match nothing instead of
    corrupting the counters.

    Returns:
        Tuple of (filter, update)
    """
    old_state = reaction_state(before, user_id)
    new_state = reaction_state(after, user_id)
    user_oid = to_object_id(user_id, "user id")

    query: dict = {"_id": to_object_id(before.id, "review id")}
    for state, (members, _) in _FIELDS.items():
        query[members] = user_oid if state == old_state else {"$ne": user_oid}

    update: dict = {"$set": {"updated_at": now or datetime.now(timezone.utc)}}
    inc: dict = {}
    if old_state != ReactionState.NONE:
        members, counter = _FIELDS[old_state]
        update["$pull"] = {members: user_oid}
        inc[counter] = -1
    if new_state != ReactionState.NONE:
        members, counter = _FIELDS[new_state]
        update["$push"] = {members: user_oid}
        inc[counter] = 1
    if inc:
        update["$inc"] = inc

    return query, update


def find_review(review_id: str, uow: UnitOfWork) -> Review:
    """Load a review inside the unit of work or raise ReviewNotFoundError."""
    doc = mongo_client.get_collection(REVIEWS).find_one({"_id": to_object_id(review_id, "review id")}, **uow.options())
    if not doc:
        raise ReviewNotFoundError(f"Review {review_id} not found")
    return Review.model_validate(doc)


def toggle_reaction(review_id: str, user_id: str, kind: ReactionKind, uow: UnitOfWork) -> Review:
    """
    Toggle a like or dislike of user_id on a review.

    Args:
        review_id: Review ID
        user_id: ID of the reacting user
        kind: LIKE or DISLIKE
        uow: Active unit of work

    Returns:
        Updated review

    Raises:
        InvalidIdError: If an id is malformed
        ReviewNotFoundError: If the review does not exist
        SelfReactionForbiddenError: If the user wrote the review
        ReactionConflictError: If the reactions changed concurrently
    """
    user_id = canonical_id(user_id, "user id")
    # Re-read inside the unit so the transition uses current membership
    review = find_review(review_id, uow)
    updated = apply_reaction(review, user_id, kind)
    query, update = build_reaction_update(review, updated, user_id)

    doc = mongo_client.get_collection(REVIEWS).find_one_and_update(
        query, update, return_document=ReturnDocument.AFTER, **uow.options()
    )
    if not doc:
        logger.warning(f"Reactions on review {review_id} changed while user {user_id} was reacting")
        raise ReactionConflictError("Review reactions changed concurrently, please retry")

    logger.info(
        f"User {user_id} {kind.value}d review {review_id}: "
        f"{reaction_state(review, user_id).value} -> {reaction_state(updated, user_id).value}"
    )
    return Review.model_validate(doc)
