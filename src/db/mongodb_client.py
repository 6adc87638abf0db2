"""MongoDB connection and utilities."""

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from src.config import MONGO_CONFIG

RESTAURANTS = "restaurants"
REVIEWS = "reviews"


class MongoDBClient:
    def __init__(self):
        self.client = MongoClient(
            MONGO_CONFIG["uri"],
            tz_aware=True,
            serverSelectionTimeoutMS=MONGO_CONFIG["server_selection_timeout_ms"],
            socketTimeoutMS=MONGO_CONFIG["socket_timeout_ms"],
        )
        self.db: Database = self.client[MONGO_CONFIG["database"]]

    def get_collection(self, name: str):
        """Get a MongoDB collection."""
        return self.db[name]

    def create_indexes(self):
        """Create necessary indexes."""
        # Reviews indexes
        reviews = self.db.get_collection(REVIEWS)
        reviews.create_index("restaurant_id")
        reviews.create_index("user_id")
        # One review per author and restaurant
        reviews.create_index([("user_id", ASCENDING), ("restaurant_id", ASCENDING)], unique=True)
        # Restaurants indexes
        restaurants = self.db.get_collection(RESTAURANTS)
        restaurants.create_index("approved")
        restaurants.create_index([("ranking_score", DESCENDING)])


# Singleton instance
mongo_client = MongoDBClient()
