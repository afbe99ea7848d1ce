from app.api.http.health import router as health_router
from app.api.http.auth import router as auth_router
from app.api.http.tours import router as tours_router
from app.api.http.public import router as public_router
from app.api.http.analytics import router as analytics_router

__all__ = [
    "health_router",
    "auth_router",
    "tours_router",
    "public_router",
    "analytics_router"
]
