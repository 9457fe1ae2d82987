import logging
import time

import jwt
import pytest

from app.core.errors import (
    ERROR_STATUSES,
    ConflictingHistory,
    InvalidRelationship,
    InvalidToken,
    NotAllowed,
    NotFound,
    ServerError,
)
from app.features.users.auth import extract_token, retrieve_claims, verify_jwt_token
from app.utils import get_logger, setup_logging


def test_error_codes_map_to_statuses():
    assert NotAllowed().status == 403
    assert NotFound("Group not found").status == 404
    assert ConflictingHistory().status == 409
    assert InvalidRelationship().status == 500
    assert InvalidToken().status == 401
    assert ServerError("no-such-code").status == 500
    assert set(ERROR_STATUSES) >= {"not-allowed", "entity-not-found", "invalid-relationship"}


def test_error_response_body():
    body = NotFound("Group not found", details={"id": "x"}).to_response().model_dump()
    assert body == {
        "error": {
            "code": "entity-not-found",
            "message": "Group not found",
            "status": 404,
            "details": {"id": "x"},
        }
    }
    assert NotAllowed().message == "You are not allowed to perform this action."


def test_loggers_share_one_handler():
    first = setup_logging()
    assert setup_logging() is first
    assert len(first.handlers) == 1
    assert get_logger("features.groups").name == "app.features.groups"
    assert get_logger("app.features.groups") is logging.getLogger("app.features.groups")


def test_extract_token():
    assert extract_token("Bearer abc.def") == "abc.def"
    assert extract_token("  bearer   abc.def ") == "abc.def"
    assert extract_token("abc.def") == "abc.def"
    for header in (None, "", "   "):
        with pytest.raises(InvalidToken):
            extract_token(header)


def test_verify_jwt_token():
    token = jwt.encode({"userId": "pfy", "exp": int(time.time()) + 60}, "secret", algorithm="HS256")
    assert verify_jwt_token(token)["userId"] == "pfy"

    expired = jwt.encode({"userId": "pfy", "exp": int(time.time()) - 60}, "secret", algorithm="HS256")
    with pytest.raises(InvalidToken, match="expired"):
        verify_jwt_token(expired)
    with pytest.raises(InvalidToken):
        verify_jwt_token("not-a-token")


def test_groot_claim_comes_from_labels():
    assert retrieve_claims({"labels": ["groot", "beta"]}) == {"groot": True}
    assert retrieve_claims({"labels": ["beta"]}) == {"groot": False}
    assert retrieve_claims({}) == {"groot": False}


def test_public_endpoints(client):
    assert client.get("/ping").json() == {"pong": True}
    assert client.get("/health").json() == {"status": "healthy"}


def test_missing_token_is_rejected(client):
    from app.main import app
    from app.features.users.dependencies import get_current_actor

    # use the real identity dependency for this request
    del app.dependency_overrides[get_current_actor]
    response = client.get("/groups/")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "invalid-token"
