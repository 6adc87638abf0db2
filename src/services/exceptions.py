"""Domain exceptions for the review and ranking services."""


class ReviewsServiceError(Exception):
    """Base exception for all review service errors."""

    code = "error"


class InvalidIdError(ReviewsServiceError):
    """Identifier is not a valid ObjectId."""

    code = "invalid"


class InvalidRatingError(ReviewsServiceError):
    """Rating is outside the allowed range."""

    code = "invalid"


class ReviewNotFoundError(ReviewsServiceError):
    """Review does not exist."""

    code = "not_found"


class RestaurantNotFoundError(ReviewsServiceError):
    """Restaurant does not exist or is not approved."""

    code = "not_found"


class DuplicateReviewError(ReviewsServiceError):
    """User already reviewed this restaurant."""

    code = "conflict"


class ReactionConflictError(ReviewsServiceError):
    """Review reactions changed between read and write."""

    code = "conflict"


class SelfReactionForbiddenError(ReviewsServiceError):
    """Users cannot like or dislike their own review."""

    code = "forbidden"


class UnauthorizedReviewActionError(ReviewsServiceError):
    """User cannot modify this review."""

    code = "forbidden"


class InvalidRequestError(ReviewsServiceError):
    """Request parameters are not acceptable."""

    code = "invalid"
