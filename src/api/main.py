"""
FastAPI application for tcpdial
"""

from fastapi import FastAPI
import logging

from src.core.config import load_config
from src.core.logging_utils import configure_logging

# Import route modules
from .routers import dial

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="tcpdial API",
    description="Outbound TCP dial requests",
    version="1.0.0"
)

# Include routers
app.include_router(dial.router)

@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": "tcpdial API",
        "version": "1.0.0",
        "endpoints": [
            "/api/v1/dial - Open a TCP connection to a host and port",
            "/docs - API documentation",
            "/health - Health check"
        ]
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "tcpdial"}

if __name__ == "__main__":
    import uvicorn
    config = load_config()
    configure_logging(config.log_level, config.log_format)
    uvicorn.run(app, host="127.0.0.1", port=8000)
