"""
FastAPI application entry point.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from repodeck.config import settings
from repodeck.middleware.logging import RequestLoggingMiddleware
from repodeck.api import repositories, workspaces
from repodeck.services.github_gateway import close_github_gateway
from repodeck.services.workspace import get_workspace_registry
from repodeck.utils.logging import setup_logging, get_logger

# Configure structured logging
setup_logging(settings.log_level)

logger = get_logger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Repodeck",
    description="Repository workspace over GitHub: file tree, file viewer, pull requests and reviews",
    version="0.1.0"
)

# Browser clients in production are served from these origins
frontend_origins = [
    "http://localhost:3000",
    "http://localhost:80",
    "http://localhost",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=frontend_origins if settings.environment == "production" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "version": "0.1.0"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Repodeck API",
        "version": "0.1.0",
        "docs": "/docs"
    }


# Include API routers
app.include_router(repositories.router)
app.include_router(workspaces.router)


@app.on_event("startup")
async def startup_event():
    logger.info("Starting Repodeck API", extra={"github_api_url": settings.github_api_url})


@app.on_event("shutdown")
async def shutdown_event():
    """Close open workspace sessions and the shared GitHub client."""
    logger.info("Shutting down Repodeck API")

    registry = get_workspace_registry()
    open_sessions = len(registry)
    await registry.close_all()
    logger.info(f"Closed {open_sessions} workspace sessions")

    await close_github_gateway()
    logger.info("GitHub gateway closed")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
