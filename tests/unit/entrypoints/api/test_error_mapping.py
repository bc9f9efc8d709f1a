"""Tests for domain error rendering."""

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from promptstudio.core.auth.types import User
from promptstudio.core.exceptions import (
    AccessDenied,
    AdminRequired,
    CapacityExceeded,
    EmailMismatch,
    InvitationExpired,
    MemberNotFound,
    PromptStudioError,
    TeamNotFound,
    Unauthenticated,
    ValidationError,
    ValidationErrors,
)
from promptstudio.entrypoints.api.app import app as production_app
from promptstudio.entrypoints.api.errors import error_body, status_for


class TestStatusFor:
    """Tests for status_for."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (Unauthenticated(), 401),
            (AccessDenied(), 403),
            (TeamNotFound(), 403),
            (AdminRequired(), 403),
            (EmailMismatch(), 403),
            (MemberNotFound(), 404),
            (CapacityExceeded(), 409),
            (InvitationExpired(), 410),
            (ValidationError("email", "bad"), 422),
            (PromptStudioError(), 400),
        ],
    )
    def test_status(self, exc: PromptStudioError, expected: int) -> None:
        assert status_for(exc) == expected


class TestErrorBody:
    """Tests for error_body."""

    def test_team_not_found_looks_like_denial(self) -> None:
        assert error_body(TeamNotFound()) == error_body(AccessDenied())

    def test_single_field_error(self) -> None:
        body = error_body(ValidationError("slug", "Slug is required"))

        assert body["field_errors"] == {"slug": "Slug is required"}

    def test_first_reason_per_field_wins(self) -> None:
        body = error_body(
            ValidationErrors(
                [ValidationError("email", "first"), ValidationError("email", "second")]
            )
        )

        assert body["field_errors"] == {"email": "first"}


class TestUnhandledErrors:
    """Unexpected failures become a generic 500."""

    def test_internal_error_is_opaque(
        self,
        api_app: FastAPI,
        alice: User,
        auth_headers: Callable[[User], dict[str, str]],
    ) -> None:
        api_app.state.registry.list_user_teams = AsyncMock(side_effect=RuntimeError("db gone"))
        client = TestClient(api_app, raise_server_exceptions=False)

        response = client.get("/api/v1/teams", headers=auth_headers(alice))

        assert response.status_code == 500
        assert response.json() == {"code": "internal_error", "detail": "Internal server error"}


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self) -> None:
        """Served without running the database lifespan."""
        response = TestClient(production_app).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
