"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handling import register_exception_handlers
from app.api.v1 import router as v1_router
from app.core.config import Settings, get_settings
from app.core.cookies import CookiePolicy
from app.core.tokens import TokenIssuer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the API. Settings are read once here and shared through app.state;
    a missing token secret fails here, before the server accepts requests.
    """
    settings = settings or get_settings()
    app = FastAPI(
        title="Emporium API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.token_issuer = TokenIssuer(settings)
    app.state.cookie_policy = CookiePolicy(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        max_age=86400,
    )

    register_exception_handlers(app)
    app.include_router(v1_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Emporium API"}

    return app


app = create_app()
