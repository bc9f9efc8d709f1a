"""API test fixtures: an app wired to in-memory storage."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from promptstudio.adapters.auth.jwt import JwtIdentityProvider
from promptstudio.adapters.db.memory import InMemoryStorage
from promptstudio.core.auth.types import User
from promptstudio.core.exceptions import PromptStudioError
from promptstudio.entrypoints.api.deps import configure_services
from promptstudio.entrypoints.api.errors import domain_error_handler, unhandled_error_handler
from promptstudio.entrypoints.api.routes import api_router
from tests.fixtures.identity import RecordingNotifier

TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"


@pytest.fixture
def identity_provider() -> JwtIdentityProvider:
    """Session token issuer and verifier."""
    return JwtIdentityProvider(TEST_SECRET)


@pytest.fixture
def api_app(
    storage: InMemoryStorage,
    identity_provider: JwtIdentityProvider,
    notifier: RecordingNotifier,
) -> FastAPI:
    """App with every route and error handler, without the database lifespan."""
    app = FastAPI(redirect_slashes=False)
    app.add_exception_handler(PromptStudioError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(api_router, prefix="/api/v1")
    configure_services(app, storage, identity_provider, notifier=notifier, free_member_limit=3)
    return app


@pytest.fixture
def client(api_app: FastAPI) -> TestClient:
    """HTTP client for the API app."""
    return TestClient(api_app)


@pytest.fixture
def auth_headers(identity_provider: JwtIdentityProvider) -> Callable[[User], dict[str, str]]:
    """Build a bearer header for a user."""

    def build(user: User) -> dict[str, str]:
        token = identity_provider.issue_session_token(user.id)
        return {"Authorization": f"Bearer {token}"}

    return build
