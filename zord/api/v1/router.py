from fastapi import APIRouter
from zord.api.v1.endpoints import admin, auth, feed, posts, users, search, notifications, realtime

# ============================================================
# Main API v1 Router
# ============================================================

api_router = APIRouter()

# Include auth routes at /auth
api_router.include_router(
    auth.router,
    prefix="/auth"
)

# Routes below define their own prefixes (/feed, /posts, /users, ...)
api_router.include_router(feed.router)
api_router.include_router(posts.router)
api_router.include_router(users.router)
api_router.include_router(search.router)
api_router.include_router(notifications.router)
api_router.include_router(admin.router)

# WebSocket /ws/notifications
api_router.include_router(realtime.router)
