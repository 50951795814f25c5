from fastapi import APIRouter

from app.api.routes.auth import router as auth_router
from app.api.routes.caregivers import router as caregivers_router
from app.api.routes.email import router as email_router
from app.api.routes.notifications import router as notifications_router
from app.api.routes.user import router as user_router

api_router = APIRouter(prefix="/api")

# Patient auth
api_router.include_router(auth_router)

# Caregiver auth, connections and sync
api_router.include_router(caregivers_router)

# Patient self-service and lookups
api_router.include_router(user_router)

# Push and email
api_router.include_router(notifications_router)
api_router.include_router(email_router)
