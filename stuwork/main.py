# ========================================
# stuwork/main.py - application entry point
# ========================================

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stuwork.config import ALLOWED_ORIGINS, configure_logging
from stuwork.database import close_mongo_connection, connect_to_mongo
from stuwork.services.realtime import RealtimeChannel
from stuwork.utils.email import Mailer
from stuwork.utils.errors import register_exception_handlers

# ===========================
# IMPORT ALL ROUTERS
# ===========================

from stuwork.routes.auth import router as auth_router
from stuwork.routes.job import router as job_router
from stuwork.routes.notification import router as notification_router
from stuwork.routes.realtime import router as realtime_router

configure_logging()
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# ===========================
# CREATE FASTAPI APP
# ===========================

app = FastAPI(
    title="Stuwork API",
    description="Student job board: OTP registration, job postings, applications and live notifications",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# One channel and one mail relay per process, handed to the services.
app.state.channel = RealtimeChannel()
app.state.mailer = Mailer()

# ===========================
# CORS MIDDLEWARE
# ===========================
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ===========================
# DATABASE EVENTS
# ===========================

@app.on_event("startup")
async def start_db():
    """Connect to MongoDB on startup"""
    await connect_to_mongo()
    if app.state.mailer.console_mode:
        logger.warning("⚠️ Email credentials not configured. Using console mode.")
    logger.info("🚀 Stuwork API started (realtime channel at /ws)")


@app.on_event("shutdown")
async def stop_db():
    """Close MongoDB connection on shutdown"""
    await close_mongo_connection()

# ===========================
# REGISTER ROUTERS
# ===========================

app.include_router(auth_router)
app.include_router(job_router)
app.include_router(notification_router)
app.include_router(realtime_router)

# ===========================
# ROOT ENDPOINTS
# ===========================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "message": "Stuwork API is running!",
        "version": API_VERSION,
    }
