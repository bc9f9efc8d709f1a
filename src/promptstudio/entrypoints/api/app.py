"""FastAPI application definition."""

from __future__ import annotations

from fastapi import FastAPI

from promptstudio import __version__
from promptstudio.core.exceptions import PromptStudioError

from .deps import lifespan
from .errors import domain_error_handler, unhandled_error_handler
from .routes import api_router

app = FastAPI(
    title="promptstudio",
    description="Team identity, membership and invitations",
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,  # Prevent 307 redirects that lose auth headers
)

app.add_exception_handler(PromptStudioError, domain_error_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, unhandled_error_handler)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
