"""
Test helpers: in-process JWT signing and an API user driver.

``ApiUser`` wraps the Flask test client with a bearer token for one
identity, so integration tests read as a conversation between users:
``leader.post(...)``, ``member.get(...)``, ``leader.sync()``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def _generate_rsa_key_pair() -> tuple[str, str]:
    """Generate an in-memory RSA private/public key pair as PEM strings."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return private_pem, public_pem


# Generated once per test process and reused everywhere.
TEST_PRIVATE_KEY, TEST_PUBLIC_KEY = _generate_rsa_key_pair()


def generate_throwaway_key_pair() -> tuple[str, str]:
    """Generate a fresh RSA key pair for negative-path tests."""
    return _generate_rsa_key_pair()


def create_test_token(
    user_id: int,
    username: str,
    private_key: str = TEST_PRIVATE_KEY,
    expired: bool = False,
) -> str:
    """Create a signed RS256 test token with required claims."""
    now = datetime.now(timezone.utc)
    expiry_time = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload: dict[str, Any] = {
        "user_id": int(user_id),
        "username": str(username),
        "iat": int(now.timestamp()),
        "exp": int(expiry_time.timestamp()),
    }
    return jwt.encode(payload, private_key, algorithm="RS256")


def auth_headers(token: str) -> dict[str, str]:
    """Build common JSON API headers with bearer token auth."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


class RequestRejected(Exception):
    """Raised by ``ApiUser`` when the API answers with an error status."""

    def __init__(self, status_code: int, body: Any) -> None:
        super().__init__(f"{status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ApiUser:
    """
    One authenticated identity talking to the API through the test client.

    Paths are relative to ``/api``. Successful calls return the decoded
    JSON body; error statuses raise ``RequestRejected``.
    """

    def __init__(self, client, user_id: int, username: str) -> None:
        self.client = client
        self.id = user_id
        self.username = username
        self.headers = auth_headers(create_test_token(user_id, username))
        self.notifications: list[dict[str, Any]] = []
        self.preferences: dict[str, Any] = {}

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        response = self.client.open(
            f"/api{path}",
            method=method,
            json=body,
            headers=self.headers,
        )
        payload = response.get_json(silent=True)
        if response.status_code >= 400:
            raise RequestRejected(response.status_code, payload)
        return payload

    def get(self, path: str) -> Any:
        return self._request("GET", path)

    def post(self, path: str, body: dict[str, Any] | None = None) -> Any:
        return self._request("POST", path, body)

    def put(self, path: str, body: dict[str, Any] | None = None) -> Any:
        return self._request("PUT", path, body)

    def delete(self, path: str) -> Any:
        return self._request("DELETE", path)

    def sync(self) -> dict[str, Any]:
        """Refresh ``notifications`` and ``preferences`` from the server."""
        data = self.get("/user")
        self.notifications = data["notifications"]
        self.preferences = data["preferences"]
        return data

    def update(self, preferences: dict[str, Any]) -> dict[str, Any]:
        return self.put("/user", {"preferences": preferences})

    def find_copy(self, master_id: str) -> dict[str, Any] | None:
        """Return this user's copy of ``master_id`` or ``None``."""
        for task in self.get("/tasks/user"):
            if task["group"]["taskId"] == master_id:
                return task
        return None

    def __repr__(self) -> str:
        return f"<ApiUser {self.id}: {self.username}>"
