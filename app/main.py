import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.routes.router import api_router
from app.core.config import get_settings
from app.core.errors import AppError
from app.core.firebase import init_firebase
from app.services.logger import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="MindFlow Backend")


@app.on_event("startup")
def startup():
    """Initialize third-party services at app startup."""
    settings = get_settings()
    # Firebase Admin backs both Firestore and FCM; the in-memory store needs neither
    if settings.STORE_BACKEND == "firestore":
        init_firebase()
    logger.info("MindFlow backend started (environment=%s, store=%s)", settings.ENVIRONMENT, settings.STORE_BACKEND)


# -------------------------
# Error envelopes
# -------------------------
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Server error"})


# -------------------------
# Liveness
# -------------------------
@app.get("/")
async def root():
    return {"success": True, "message": "MindFlow backend is running"}


@app.get("/ping")
async def ping():
    return {"success": True, "timestamp": datetime.now(timezone.utc).isoformat(), "message": "Server is available"}


@app.get("/health")
async def health_check():
    return {"success": True, "status": "ok"}


# Include API routers
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=get_settings().PORT)
