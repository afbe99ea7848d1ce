from app.db.models.user import User
from app.db.models.tour import Tour

__all__ = [
    "User",
    "Tour",
]
