# src/nft_bridge/api/v1/endpoints/validator.py
"""Validator secret service endpoints."""

from __future__ import annotations

import base64
import logging
import secrets

from fastapi import APIRouter, HTTPException, status

from nft_bridge.api.v1.dependencies import (
    KeyRingStoreDep,
    OperatorDep,
    SignerDep,
    ValidatorServiceDep,
)
from nft_bridge.core.exceptions import (
    BridgeError,
    ConcurrentRotationError,
    DecryptionError,
    FreshnessError,
    IndexOutOfRangeError,
    SetupError,
    SignatureError,
)
from nft_bridge.core.security import normalize_address
from nft_bridge.schemas.validator import (
    AuthenticatedRequest,
    ChallengeResponse,
    CommitRequest,
    CommitResponse,
    RevealRequest,
    RevealResponse,
    RotateRequest,
    RotateResponse,
)
from nft_bridge.utils.hash import KEY_LENGTH_BYTES, from_hex, to_hex32

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/validator", tags=["validator"])

_ERROR_STATUS: dict[type[BridgeError], int] = {
    FreshnessError: status.HTTP_401_UNAUTHORIZED,
    SignatureError: status.HTTP_401_UNAUTHORIZED,
    DecryptionError: status.HTTP_400_BAD_REQUEST,
    IndexOutOfRangeError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ConcurrentRotationError: status.HTTP_409_CONFLICT,
    SetupError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _encode_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def _decode_b64(field: str, data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(data + padding)
    except Exception as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid base64 encoding for {field}",
        ) from err


def _decode_hex(field: str, data: str) -> bytes:
    try:
        return from_hex(data)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid hex encoding for {field}",
        ) from err


def _owner(payload: AuthenticatedRequest) -> str:
    try:
        return normalize_address(payload.token_owner)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err


def _to_http(err: Exception) -> HTTPException:
    if isinstance(err, BridgeError):
        code = next(
            (code for kind, code in _ERROR_STATUS.items() if isinstance(err, kind)),
            status.HTTP_400_BAD_REQUEST,
        )
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(err))


@router.post(
    "/challenge",
    summary="Issue a stateless challenge",
    response_model=ChallengeResponse,
)
async def issue_challenge(validator: ValidatorServiceDep) -> ChallengeResponse:
    """Return a challenge any replica can later verify."""
    issued = validator.issue_challenge()
    return ChallengeResponse(timestamp=issued.timestamp, challenge=to_hex32(issued.challenge))


@router.post(
    "/commit",
    summary="Commit to a secret for a token burn",
    response_model=CommitResponse,
)
async def commit(
    payload: CommitRequest,
    validator: ValidatorServiceDep,
    signer: SignerDep,
) -> CommitResponse:
    """Authenticate the owner, derive the commitment and co-sign it for the bridge."""
    owner = _owner(payload)
    request_nonce = _decode_hex("request_nonce", payload.request_nonce)
    challenge_signature = _decode_hex("challenge_signature", payload.challenge_signature)
    burn_signature = _decode_hex("burn_signature", payload.burn_signature)

    try:
        signer.verify_burn_request(owner, payload.token_id, burn_signature)
        result = validator.commit(
            owner,
            payload.token_id,
            request_nonce,
            payload.timestamp,
            challenge_signature,
        )
        validator_signature = signer.sign_commit(
            owner,
            payload.token_id,
            payload.token_uri,
            result.commitment,
            payload.timestamp,
        )
    except (BridgeError, ValueError) as err:
        raise _to_http(err) from err

    return CommitResponse(
        token_owner=owner,
        token_id=payload.token_id,
        commitment=to_hex32(result.commitment),
        key_indicator=_encode_b64(result.key_indicator),
        request_timestamp=payload.timestamp,
        validator_signature="0x" + validator_signature.hex(),
        generation=result.generation,
    )


@router.post(
    "/reveal",
    summary="Reveal the secret behind a commitment",
    response_model=RevealResponse,
)
async def reveal(payload: RevealRequest, validator: ValidatorServiceDep) -> RevealResponse:
    """Recover a committed secret for an owner who answers a fresh challenge."""
    owner = _owner(payload)
    request_nonce = _decode_hex("request_nonce", payload.request_nonce)
    challenge_signature = _decode_hex("challenge_signature", payload.challenge_signature)
    key_indicator = _decode_b64("key_indicator", payload.key_indicator)

    try:
        secret = validator.authenticated_reveal(
            owner,
            payload.token_id,
            request_nonce,
            key_indicator,
            payload.timestamp,
            challenge_signature,
        )
    except IndexOutOfRangeError as err:
        logger.error("Key indicator for token %d names an unknown generation", payload.token_id)
        raise _to_http(err) from err
    except (BridgeError, ValueError) as err:
        raise _to_http(err) from err

    return RevealResponse(secret=to_hex32(secret))


@router.post(
    "/rotate",
    summary="Append a commit key generation",
    response_model=RotateResponse,
)
async def rotate(
    payload: RotateRequest,
    store: KeyRingStoreDep,
    operator: OperatorDep,
) -> RotateResponse:
    """Rotate the commit key ring. Older generations stay available for reveal."""
    if payload.commit_key is None:
        new_key = secrets.token_bytes(KEY_LENGTH_BYTES)
    else:
        new_key = _decode_hex("commit_key", payload.commit_key)

    try:
        generation = store.rotate(new_key)
    except (BridgeError, ValueError) as err:
        raise _to_http(err) from err

    logger.info("Operator %s rotated commit key ring to generation %d", operator, generation)
    return RotateResponse(generation=generation)
