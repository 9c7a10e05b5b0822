from fastapi import APIRouter

from teammatch.api.v1.health import router as health_router
from teammatch.api.v1.profiles import router as profiles_router
from teammatch.api.v1.teams import router as teams_router
from teammatch.api.v1.swipes import router as swipes_router
from teammatch.api.v1.join_requests import router as join_requests_router
from teammatch.api.v1.activity import router as activity_router
from teammatch.api.v1.conversations import router as conversations_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])

# ------------------------------------------------------------------
# PEOPLE / TEAMS
# ------------------------------------------------------------------
v1_router.include_router(profiles_router)
v1_router.include_router(teams_router)

# ------------------------------------------------------------------
# MATCHING
# ------------------------------------------------------------------
v1_router.include_router(swipes_router)
v1_router.include_router(join_requests_router)
v1_router.include_router(activity_router)

# ------------------------------------------------------------------
# MESSAGING
# ------------------------------------------------------------------
v1_router.include_router(conversations_router)
