"""Tests for the structured message encodings."""

from __future__ import annotations

import pytest

from nft_bridge.services.messages import (
    BridgeConfig,
    burn_challenge_message,
    challenge_input,
    commit_message,
    request_binding,
    request_token_burn_message,
)
from tests.conftest import OTHER, OWNER, TO_BRIDGE, VALIDATOR


def test_request_binding_has_unambiguous_boundaries() -> None:
    first = request_binding(OWNER, 1, b"\x02\x03")
    second = request_binding(OWNER, 258, b"\x03")
    assert first != second
    assert request_binding(OWNER, 7, b"n1") == request_binding(OWNER.lower(), 7, b"n1")
    assert request_binding(OWNER, 7, b"n1") != request_binding(OTHER, 7, b"n1")


@pytest.mark.parametrize(
    ("token_id", "nonce"),
    [(-1, b"n"), (2**256, b"n"), (1, b""), (1, b"x" * 257)],
)
def test_request_binding_rejects_out_of_range_fields(token_id: int, nonce: bytes) -> None:
    with pytest.raises(ValueError):
        request_binding(OWNER, token_id, nonce)


def test_challenge_input_is_fixed_width() -> None:
    assert len(challenge_input(0)) == len(challenge_input(2**40))
    with pytest.raises(ValueError):
        challenge_input(-5)


def test_burn_request_binds_the_bridge_quadruple(bridge_config: BridgeConfig) -> None:
    other_deployment = BridgeConfig.create(
        from_token=bridge_config.from_token,
        from_bridge=bridge_config.from_bridge,
        to_token=bridge_config.to_token,
        to_bridge=OTHER,
        validator=VALIDATOR,
    )
    original = request_token_burn_message(bridge_config, OWNER, 7)
    assert original == request_token_burn_message(bridge_config, OWNER, 7)
    assert original != request_token_burn_message(other_deployment, OWNER, 7)
    assert original != request_token_burn_message(bridge_config, OWNER, 8)
    assert bridge_config.to_bridge.lower() == TO_BRIDGE


def test_commit_message_binds_token_uri(bridge_config: BridgeConfig) -> None:
    commitment = b"\x11" * 32
    first = commit_message(bridge_config, OWNER, 7, "ipfs://a", commitment, 100)
    assert first != commit_message(bridge_config, OWNER, 7, "ipfs://b", commitment, 100)
    assert first != commit_message(bridge_config, OWNER, 7, "ipfs://a", commitment, 101)
    with pytest.raises(ValueError):
        commit_message(bridge_config, OWNER, 7, "ipfs://a", b"\x11" * 31, 100)


def test_burn_challenge_requires_32_byte_challenge() -> None:
    with pytest.raises(ValueError):
        burn_challenge_message(7, b"n1", 100, b"short")


@pytest.mark.parametrize("timestamp", [-1, 2**256, True])
def test_signed_timestamps_must_be_uint256(bridge_config: BridgeConfig, timestamp: int) -> None:
    with pytest.raises(ValueError):
        commit_message(bridge_config, OWNER, 7, "ipfs://a", b"\x11" * 32, timestamp)
    with pytest.raises(ValueError):
        burn_challenge_message(7, b"n1", timestamp, b"\x22" * 32)
