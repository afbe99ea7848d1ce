from app.db.repositories.user_repository import UserRepository
from app.db.repositories.tour_repository import TourRepository

__all__ = [
    "UserRepository",
    "TourRepository",
]
