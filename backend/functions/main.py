"""
FastAPI application entry point for the ElevenLabs TTS proxy.

Serves the browser client and the /api/tts streaming proxy from one app.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from src import __version__
from src.config import Settings
from src.elevenlabs import router as elevenlabs_router
from src.errors import register_error_handlers
from src.middleware import RateLimiter, RequestLoggerMiddleware, SecurityHeadersMiddleware
from src.static import mount_static

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    rate_limiter: Optional[RateLimiter] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Runtime settings (defaults to Settings() read from the environment).
        rate_limiter: Limiter for /api/tts (defaults to one built from settings).
        http_client: Shared client for ElevenLabs calls. When omitted one is
            opened on startup and closed on shutdown.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or Settings()
    rate_limiter = rate_limiter or RateLimiter(
        requests_per_minute=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_client = app.state.http_client is None
        if owns_client:
            app.state.http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.timeout_seconds, connect=10.0)
            )
        if not settings.tts_configured:
            logger.warning("ELEVEN_API_KEY / ELEVEN_VOICE_ID missing, /api/tts will answer 500")
        try:
            yield
        finally:
            if owns_client:
                await app.state.http_client.aclose()
                app.state.http_client = None

    app = FastAPI(
        title="ElevenLabs TTS Proxy",
        description="Streaming text-to-speech proxy and static client host",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.rate_limiter = rate_limiter
    app.state.http_client = http_client

    app.add_middleware(SecurityHeadersMiddleware)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    # Added last so it wraps everything else
    app.add_middleware(RequestLoggerMiddleware)

    register_error_handlers(app)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "service": "tts-proxy"}

    app.include_router(elevenlabs_router)

    # Catch-all static mount goes last
    mount_static(app, settings.static_dir)

    return app


app = create_app()

# AWS Lambda / Google Cloud Functions handler
handler = Mangum(app)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "5173"))
    logger.info(f"Server listening on http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port)
