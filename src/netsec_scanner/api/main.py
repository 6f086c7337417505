"""
FastAPI application serving the network scanner to the dashboard
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from netsec_scanner import __version__
from netsec_scanner.api.routes import recon_routes

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Network Security Scanner API",
    description="TCP connect scanning with service identification and heuristic vulnerability notes",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("NETSEC_SCANNER_CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recon_routes.router)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": "Network Security Scanner API",
        "version": __version__,
        "endpoints": [
            "/recon/scan - Run a port scan",
            "/recon/profiles - Available scan profiles",
            "/docs - API documentation",
            "/health - Health check",
        ],
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "netsec-scanner"}


def run():
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("NETSEC_SCANNER_API_HOST", "127.0.0.1"),
        port=int(os.getenv("NETSEC_SCANNER_API_PORT", "8000")),
    )


if __name__ == "__main__":
    run()
