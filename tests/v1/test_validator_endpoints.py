"""Tests for the validator challenge, commit, reveal and rotate endpoints."""

from __future__ import annotations

import base64

from fastapi.testclient import TestClient
from jose import jwt

from nft_bridge.api.v1.dependencies import create_operator_token
from nft_bridge.contracts import BridgeContract
from nft_bridge.core.settings import settings
from nft_bridge.services.challenge import IssuedChallenge, sign_challenge
from nft_bridge.services.keyring import KeyRingStore
from nft_bridge.services.messages import BridgeConfig
from nft_bridge.utils.hash import from_hex, keccak256
from tests.conftest import (
    CHALLENGE_LIFETIME,
    OTHER_KEY,
    OWNER,
    OWNER_KEY,
    VALIDATOR,
    FakeClock,
    sign_burn_request,
)

API = "/api/v1/validator"
NONCE = b"request-nonce-1"


def _hex(data: bytes) -> str:
    return "0x" + data.hex()


def _challenge(client: TestClient) -> IssuedChallenge:
    response = client.post(f"{API}/challenge")
    assert response.status_code == 200
    body = response.json()
    return IssuedChallenge(timestamp=body["timestamp"], challenge=from_hex(body["challenge"]))


def _authenticated(
    client: TestClient,
    token_id: int = 7,
    nonce: bytes = NONCE,
    private_key: str = OWNER_KEY,
) -> dict[str, object]:
    issued = _challenge(client)
    return {
        "token_owner": OWNER,
        "token_id": token_id,
        "request_nonce": _hex(nonce),
        "timestamp": issued.timestamp,
        "challenge_signature": _hex(sign_challenge(private_key, token_id, nonce, issued)),
    }


def _commit(client: TestClient, bridge_config: BridgeConfig, token_id: int = 7, nonce: bytes = NONCE) -> dict:
    payload = {
        **_authenticated(client, token_id, nonce),
        "token_uri": f"ipfs://token/{token_id}",
        "burn_signature": _hex(sign_burn_request(OWNER_KEY, bridge_config, OWNER, token_id)),
    }
    response = client.post(f"{API}/commit", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def _operator_headers(token: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {token or create_operator_token('alice')}"}


def test_challenge_endpoint(client: TestClient, store: KeyRingStore, clock: FakeClock) -> None:
    response = client.post(f"{API}/challenge")
    assert response.status_code == 200
    body = response.json()
    assert body["timestamp"] == clock.now
    assert len(from_hex(body["challenge"])) == 32


def test_commit_feeds_bridge_contract(
    client: TestClient,
    store: KeyRingStore,
    bridge_config: BridgeConfig,
    bridge: BridgeContract,
) -> None:
    body = _commit(client, bridge_config)
    assert body["token_owner"] == OWNER
    assert body["generation"] == 0

    event = bridge.commit_and_burn(
        VALIDATOR,
        body["token_owner"],
        body["token_id"],
        from_hex(body["commitment"]),
        body["request_timestamp"],
        sign_burn_request(OWNER_KEY, bridge_config, OWNER, 7),
        from_hex(body["validator_signature"]),
    )
    assert event.commitment == from_hex(body["commitment"])
    assert bridge.commit_events(token_id=7) == [event]


def test_commit_rejects_bad_burn_signature(
    client: TestClient, store: KeyRingStore, bridge_config: BridgeConfig
) -> None:
    payload = {
        **_authenticated(client),
        "token_uri": "ipfs://token/7",
        "burn_signature": _hex(sign_burn_request(OTHER_KEY, bridge_config, OWNER, 7)),
    }
    response = client.post(f"{API}/commit", json=payload)
    assert response.status_code == 401


def test_commit_rejects_stale_challenge(
    client: TestClient, store: KeyRingStore, bridge_config: BridgeConfig, clock: FakeClock
) -> None:
    payload = {
        **_authenticated(client),
        "token_uri": "ipfs://token/7",
        "burn_signature": _hex(sign_burn_request(OWNER_KEY, bridge_config, OWNER, 7)),
    }
    clock.advance(CHALLENGE_LIFETIME)
    response = client.post(f"{API}/commit", json=payload)
    assert response.status_code == 401


def test_commit_rejects_malformed_hex(client: TestClient, store: KeyRingStore) -> None:
    payload = {
        **_authenticated(client),
        "request_nonce": "0xnothex",
        "token_uri": "ipfs://token/7",
        "burn_signature": "0x00",
    }
    response = client.post(f"{API}/commit", json=payload)
    assert response.status_code == 400


def test_reveal_returns_committed_secret(
    client: TestClient, store: KeyRingStore, bridge_config: BridgeConfig
) -> None:
    body = _commit(client, bridge_config)
    response = client.post(
        f"{API}/reveal",
        json={**_authenticated(client), "key_indicator": body["key_indicator"]},
    )
    assert response.status_code == 200, response.text
    secret = from_hex(response.json()["secret"])
    assert keccak256(secret) == from_hex(body["commitment"])


def test_reveal_requires_owner_signature(
    client: TestClient, store: KeyRingStore, bridge_config: BridgeConfig
) -> None:
    body = _commit(client, bridge_config)
    response = client.post(
        f"{API}/reveal",
        json={**_authenticated(client, private_key=OTHER_KEY), "key_indicator": body["key_indicator"]},
    )
    assert response.status_code == 401


def test_reveal_with_indicator_for_other_request(
    client: TestClient, store: KeyRingStore, bridge_config: BridgeConfig
) -> None:
    body = _commit(client, bridge_config)
    response = client.post(
        f"{API}/reveal",
        json={**_authenticated(client, nonce=b"request-nonce-2"), "key_indicator": body["key_indicator"]},
    )
    assert response.status_code == 400


def test_reveal_rejects_malformed_indicator(client: TestClient, store: KeyRingStore) -> None:
    response = client.post(
        f"{API}/reveal",
        json={**_authenticated(client), "key_indicator": base64.urlsafe_b64encode(b"short").decode()},
    )
    assert response.status_code == 400


def test_reveal_after_rotation(
    client: TestClient, store: KeyRingStore, bridge_config: BridgeConfig
) -> None:
    before = _commit(client, bridge_config)
    response = client.post(f"{API}/rotate", json={}, headers=_operator_headers())
    assert response.status_code == 200
    assert response.json() == {"generation": 1}

    after = _commit(client, bridge_config)
    assert after["generation"] == 1
    assert after["commitment"] != before["commitment"]

    response = client.post(
        f"{API}/reveal",
        json={**_authenticated(client), "key_indicator": before["key_indicator"]},
    )
    assert response.status_code == 200
    assert keccak256(from_hex(response.json()["secret"])) == from_hex(before["commitment"])


def test_rotate_requires_credentials(client: TestClient, store: KeyRingStore) -> None:
    response = client.post(f"{API}/rotate", json={})
    assert response.status_code in {401, 403}


def test_rotate_rejects_invalid_token(client: TestClient, store: KeyRingStore) -> None:
    response = client.post(f"{API}/rotate", json={}, headers=_operator_headers("not-a-jwt"))
    assert response.status_code == 401


def test_rotate_requires_operator_role(client: TestClient, store: KeyRingStore) -> None:
    token = jwt.encode(
        {"sub": "mallory", "role": "user"},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    response = client.post(f"{API}/rotate", json={}, headers=_operator_headers(token))
    assert response.status_code == 403


def test_rotate_with_explicit_key(client: TestClient, store: KeyRingStore) -> None:
    response = client.post(
        f"{API}/rotate",
        json={"commit_key": _hex(b"\x42" * 32)},
        headers=_operator_headers(),
    )
    assert response.status_code == 200
    assert store.load().commit_key(1) == b"\x42" * 32


def test_rotate_rejects_short_key(client: TestClient, store: KeyRingStore) -> None:
    response = client.post(
        f"{API}/rotate",
        json={"commit_key": _hex(b"\x42" * 16)},
        headers=_operator_headers(),
    )
    assert response.status_code == 400
    assert store.load().current_generation == 0


def test_unconfigured_keyring_is_unavailable(client: TestClient) -> None:
    response = client.post(f"{API}/challenge")
    assert response.status_code == 503
