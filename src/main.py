"""FastAPI application for the restaurant reviews backend."""

import logging
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from src.config import LOG_FORMAT, LOG_LEVEL
from src.services.exceptions import ReviewsServiceError
from src.services.ranking_service import ranking_service
from src.services.review_service import review_service

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Restaurant Reviews API",
    description="Restaurant reviews with rating aggregation, reactions and ranking",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    "invalid": 400,
    "forbidden": 403,
    "not_found": 404,
    "conflict": 409,
}


# Pydantic models for request/response
class CreateReviewRequest(BaseModel):
    restaurant_id: str
    rating: int
    comment: str = ""

class UpdateReviewRequest(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None


def _unwrap(result: dict) -> dict:
    """Turn a failed service result into an HTTPException."""
    if not result["success"]:
        status_code = ERROR_STATUS.get(result.get("error"), 500)
        raise HTTPException(status_code=status_code, detail=result["message"])
    return result


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "Restaurant Reviews API"}


# Review Endpoints
@app.post("/api/reviews", status_code=201)
def create_review(request: CreateReviewRequest, x_user_id: str = Header(...)):
    """Create a review for a restaurant."""
    return _unwrap(review_service.create_review(x_user_id, request.restaurant_id, request.rating, request.comment))


@app.get("/api/reviews/{review_id}")
def get_review(review_id: str):
    """Get a review by ID."""
    return _unwrap(review_service.get_review(review_id))


@app.put("/api/reviews/{review_id}")
def update_review(
    review_id: str,
    request: UpdateReviewRequest,
    x_user_id: str = Header(...),
    x_user_role: str = Header("user"),
):
    """Edit a review's rating or comment."""
    return _unwrap(
        review_service.update_review(
            review_id, x_user_id, rating=request.rating, comment=request.comment, is_admin=x_user_role == "admin"
        )
    )


@app.delete("/api/reviews/{review_id}")
def delete_review(review_id: str, x_user_id: str = Header(...), x_user_role: str = Header("user")):
    """Delete a review."""
    return _unwrap(review_service.delete_review(review_id, x_user_id, is_admin=x_user_role == "admin"))


@app.post("/api/reviews/{review_id}/like")
def like_review(review_id: str, x_user_id: str = Header(...)):
    """Toggle a like on a review."""
    return _unwrap(review_service.react(review_id, x_user_id, "like"))


@app.post("/api/reviews/{review_id}/dislike")
def dislike_review(review_id: str, x_user_id: str = Header(...)):
    """Toggle a dislike on a review."""
    return _unwrap(review_service.react(review_id, x_user_id, "dislike"))


@app.get("/api/restaurants/{restaurant_id}/reviews")
def list_restaurant_reviews(
    restaurant_id: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort_by: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    x_user_id: Optional[str] = Header(None),
):
    """List reviews of a restaurant, with the caller's reaction when identified."""
    return _unwrap(
        review_service.list_restaurant_reviews(
            restaurant_id, limit=limit, offset=offset, sort_by=sort_by, order=order, viewer_id=x_user_id
        )
    )


@app.get("/api/restaurants/{restaurant_id}/reviews/stats")
def get_review_stats(restaurant_id: str):
    """Get review statistics of a restaurant."""
    return _unwrap(review_service.get_review_stats(restaurant_id))


# Ranking Endpoints
@app.get("/api/ranking")
def get_ranking(
    category_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Get approved restaurants ordered by ranking score."""
    try:
        return ranking_service.get_ranking(category_id, limit, offset)
    except ReviewsServiceError as e:
        raise HTTPException(status_code=ERROR_STATUS.get(e.code, 500), detail=str(e))
    except Exception as e:
        logger.error(f"Error getting ranking: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@app.post("/api/ranking/recalculate")
def recalculate_rankings(x_user_role: str = Header("user")):
    """Recompute averages and rankings of all approved restaurants."""
    if x_user_role != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
    try:
        return ranking_service.recalculate_all_rankings()
    except Exception as e:
        logger.error(f"Error recalculating rankings: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, reload=True)
