# app/main.py
import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Your configuration and DB
from app.config import settings
from app.core.db import init_db, close_db
from app.core.errors import register_exception_handlers

from app.api.v1.routers import auth, users, chirps

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Every failure is rendered as {success: false, message}
register_exception_handlers(app)

@app.on_event("startup")
async def on_startup():
    # Staging directory for multipart uploads
    Path(settings.upload_temp_dir).mkdir(parents=True, exist_ok=True)
    await init_db()
    logger.info("[startup] %s ready, media bucket=%s folder=%s",
                settings.APP_NAME, settings.s3_bucket, settings.media_folder)

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(chirps.router, prefix="/api/v1")

@app.get("/healthz")
def healthz():
    return {"success": True, "message": "ok"}
