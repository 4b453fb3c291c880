"""Validator service Pydantic schemas."""

from pydantic import BaseModel, Field


class ChallengeResponse(BaseModel):
    """Challenge issued to a token owner."""

    timestamp: int = Field(..., description="Unix time at which the challenge was issued")
    challenge: str = Field(..., description="0x-prefixed 32-byte challenge to sign")


class AuthenticatedRequest(BaseModel):
    """Fields shared by every request that answers a challenge."""

    token_owner: str = Field(..., description="Address of the token owner")
    token_id: int = Field(..., ge=0, lt=2**256, description="Token to bridge")
    request_nonce: str = Field(..., description="0x-prefixed request nonce (1-256 bytes)")
    timestamp: int = Field(..., ge=0, description="Timestamp of the answered challenge")
    challenge_signature: str = Field(..., description="Owner signature over the BurnChallenge message")


class CommitRequest(AuthenticatedRequest):
    """Request to commit to a secret for a token about to be burned."""

    token_uri: str = Field(..., description="Current metadata URI of the token")
    burn_signature: str = Field(..., description="Owner signature over the RequestTokenBurn message")


class CommitResponse(BaseModel):
    """Material the validator submits to the bridge contract."""

    token_owner: str
    token_id: int
    commitment: str = Field(..., description="0x-prefixed keccak-256 commitment to the secret")
    key_indicator: str = Field(..., description="URL-safe base64 sealed key generation index")
    request_timestamp: int
    validator_signature: str = Field(..., description="0x-prefixed validator signature over Commit")
    generation: int = Field(..., description="Key generation the secret was derived under")


class RevealRequest(AuthenticatedRequest):
    """Request to recover the secret behind a commitment."""

    key_indicator: str = Field(..., description="Key indicator returned by commit")


class RevealResponse(BaseModel):
    """Recovered secret."""

    secret: str = Field(..., description="0x-prefixed 32-byte secret")


class RotateRequest(BaseModel):
    """Operator request to append a commit key generation."""

    commit_key: str | None = Field(
        None,
        description="0x-prefixed 32-byte key; generated server-side when omitted",
    )


class RotateResponse(BaseModel):
    """Result of a key rotation."""

    generation: int = Field(..., description="Index of the new current generation")
