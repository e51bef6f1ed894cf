"""
Unit tests for JWT verification and the ``require_auth`` decorator.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import insert

from app.auth import load_user, verify_token
from app.models import User
from tests.helpers import (
    TEST_PRIVATE_KEY,
    TEST_PUBLIC_KEY,
    create_test_token,
    generate_throwaway_key_pair,
)

pytestmark = pytest.mark.unit


def test_valid_token_returns_payload(app):
    token = create_test_token(7, "alice")

    with app.app_context():
        payload = verify_token(token, TEST_PUBLIC_KEY)

    assert payload["user_id"] == 7
    assert payload["username"] == "alice"


def test_expired_token_is_rejected(app):
    token = create_test_token(7, "alice", expired=True)

    with app.app_context():
        assert verify_token(token, TEST_PUBLIC_KEY) is None


def test_token_signed_by_other_key_is_rejected(app):
    other_private, _ = generate_throwaway_key_pair()
    token = create_test_token(7, "alice", private_key=other_private)

    with app.app_context():
        assert verify_token(token, TEST_PUBLIC_KEY) is None


@pytest.mark.parametrize("claims", [
    {"username": "alice"},
    {"user_id": 0, "username": "alice"},
    {"user_id": "7", "username": "alice"},
    {"user_id": 7, "username": "   "},
])
def test_bad_identity_claims_are_rejected(app, claims):
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=1)).timestamp()),
    }
    token = jwt.encode(payload, TEST_PRIVATE_KEY, algorithm="RS256")

    with app.app_context():
        assert verify_token(token, TEST_PUBLIC_KEY) is None


def test_load_user_registers_and_renames(db_session):
    user = load_user({"user_id": 42, "username": "first"})
    assert user.language == "en"

    load_user({"user_id": 42, "username": "second"})

    assert db_session.session.get(User, 42).username == "second"


def test_missing_header_is_rejected(client, db_session):
    response = client.get("/api/user")

    assert response.status_code == 401
    assert response.get_json()["error"] == "NotAuthorized"


def test_malformed_token_is_rejected(client, db_session):
    response = client.get("/api/user", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.get_json()["code"] == 401


def test_load_user_reuses_row_registered_concurrently(db_session, monkeypatch):
    db_session.session.execute(
        insert(User.__table__).values(id=43, username="racer", language="cs")
    )
    db_session.session.commit()
    lookups = []

    def missing_on_first_lookup(user_id):
        lookups.append(user_id)
        return None if len(lookups) == 1 else db_session.session.get(User, user_id)

    monkeypatch.setattr("app.auth._find_user", missing_on_first_lookup)

    user = load_user({"user_id": 43, "username": "racer-renamed"})

    assert len(lookups) == 2
    assert user.language == "cs"
    assert db_session.session.query(User).filter_by(id=43).one().username == "racer-renamed"
