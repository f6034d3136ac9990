"""CORS middleware configuration."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


def configure_cors(app: FastAPI, allowed_origins: list[str]) -> None:
    """Allow the dashboard to call the API from its own origin.

    Credentials are only allowed for an explicit origin list; browsers
    reject credentialed responses carrying a wildcard origin.

    Args:
        app: FastAPI application instance.
        allowed_origins: Allowed origin URLs, or ``["*"]``.
    """
    wildcard = "*" in allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if wildcard else allowed_origins,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
