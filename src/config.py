"""Configuration for the restaurant reviews backend."""

import math
import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", PROJECT_ROOT / "data"))

# MongoDB
MONGO_CONFIG = {
    "uri": os.getenv("MONGO_URI", "mongodb://localhost:27017"),
    "database": os.getenv("MONGO_DB", "restaurant_reviews"),
    "server_selection_timeout_ms": int(os.getenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "5000")),
    "socket_timeout_ms": int(os.getenv("MONGO_SOCKET_TIMEOUT_MS", "45000")),
}

# Redis
REDIS_CONFIG = {
    "host": os.getenv("REDIS_HOST", "localhost"),
    "port": int(os.getenv("REDIS_PORT", "6379")),
    "db": int(os.getenv("REDIS_DB", "0")),
}
CACHE_TTL = int(os.getenv("CACHE_TTL", "300"))  # ranking listings go stale fast

# Ratings
RATING_MIN = 1
RATING_MAX = 5

# Ranking
RANKING_WEIGHTS = {
    "rating": float(os.getenv("RANKING_WEIGHT_RATING", "0.5")),
    "likes_ratio": float(os.getenv("RANKING_WEIGHT_LIKES_RATIO", "0.3")),
    "recency": float(os.getenv("RANKING_WEIGHT_RECENCY", "0.2")),
}
RANKING_DECIMALS = 2

if not math.isclose(sum(RANKING_WEIGHTS.values()), 1.0):
    raise ValueError(f"Ranking weights must sum to 1, got {RANKING_WEIGHTS}")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
