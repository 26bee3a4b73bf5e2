"""
Main application entry point.
"""

import logging
import os

from fastapi import FastAPI

from bookswap.api.v1.book_endpoints import router as book_router
from bookswap.api.v1.errors import setup_exception_handlers
from bookswap.api.v1.exchange_endpoints import router as exchange_router
from bookswap.api.v1.health_endpoints import router as health_router
from bookswap.api.v1.review_endpoints import router as review_router
from bookswap.api.v1.user_endpoints import router as user_router

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def create_app() -> FastAPI:
    """Build the FastAPI application with every router and error handler."""
    app = FastAPI(
        title="BookSwap API",
        description="A marketplace where readers exchange physical books.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    setup_exception_handlers(app)

    # Include API routers
    app.include_router(exchange_router, prefix="/api/v1", tags=["exchanges"])
    app.include_router(book_router, prefix="/api/v1", tags=["books"])
    app.include_router(review_router, prefix="/api/v1", tags=["reviews"])
    app.include_router(user_router, prefix="/api/v1", tags=["users"])
    app.include_router(health_router, prefix="/api/v1", tags=["health"])

    @app.get("/")
    def read_root():
        """Root endpoint."""
        return {
            "message": "Welcome to the BookSwap API",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("bookswap.main:app", host="0.0.0.0", port=8000, reload=True)
