"""
FormHook - webhook delivery for form submissions

FastAPI application entry point.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Import observability modules
from app.config import settings
from app.sentry_config import configure_sentry
from app.middleware.logging import LoggingMiddleware
from app.routes.metrics import router as metrics_router

# Import route modules
from app.routes.webhooks import router as webhooks_router
from app.routes.forms import router as forms_router

# Initialize Sentry (if SENTRY_DSN is set)
configure_sentry()

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Delivers form submissions to user-configured webhooks with retries and a delivery log",
)

# Add logging middleware FIRST (runs before other middleware)
app.add_middleware(LoggingMiddleware)

# Allow the form builder frontend to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include metrics endpoint FIRST (so it's always available)
app.include_router(metrics_router)

# Include webhook routes
app.include_router(webhooks_router)

# Include form routes
app.include_router(forms_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected"
    }
