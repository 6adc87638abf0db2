#!/usr/bin/env python3
"""
Restaurant Reviews Backend Startup Script
This script starts the FastAPI server with all services.
"""

import uvicorn
import logging

from src.config import LOG_FORMAT, LOG_LEVEL

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format=LOG_FORMAT
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("Starting Restaurant Reviews Backend...")
    logger.info("Available endpoints:")
    logger.info("  - Health Check: GET /health")
    logger.info("  - Reviews: POST /api/reviews, GET/PUT/DELETE /api/reviews/{review_id}")
    logger.info("  - Reactions: POST /api/reviews/{review_id}/like, POST /api/reviews/{review_id}/dislike")
    logger.info("  - Restaurant Reviews: GET /api/restaurants/{restaurant_id}/reviews[/stats]")
    logger.info("  - Ranking: GET /api/ranking, POST /api/ranking/recalculate")
    logger.info("  - API Docs: http://localhost:8000/docs")

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
