"""Shared API dependencies for operator authentication and the validator core."""

from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from nft_bridge.core.exceptions import ConfigurationError, SetupError
from nft_bridge.core.settings import settings
from nft_bridge.db.session import get_db
from nft_bridge.services.challenge import Clock, system_clock
from nft_bridge.services.keyring import KeyRingStore
from nft_bridge.services.validator import (
    ValidatorSecretService,
    ValidatorSigner,
    get_validator_signer,
)

OPERATOR_ROLE = "operator"

# HTTP Bearer scheme for operator JWTs
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def create_operator_token(subject: str) -> str:
    """Create a short-lived JWT that authorizes key-ring administration."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.operator_token_expire_minutes)
    to_encode: dict[str, object] = {"sub": subject, "role": OPERATOR_ROLE, "exp": expire}
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def require_operator(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the operator subject from a valid operator JWT.

    Raises:
        HTTPException: 401 if the token is invalid, 403 if it lacks the operator role.
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    if payload.get("role") != OPERATOR_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator role required",
        )
    return str(subject)


def get_clock() -> Clock:
    return system_clock


def get_keyring_store(db: SessionDep) -> KeyRingStore:
    return KeyRingStore(db)


KeyRingStoreDep = Annotated[KeyRingStore, Depends(get_keyring_store)]
ClockDep = Annotated[Clock, Depends(get_clock)]


def get_validator_service(store: KeyRingStoreDep, clock: ClockDep) -> ValidatorSecretService:
    """Build the validator core from a fresh snapshot of the shared key ring."""
    try:
        keyring = store.load()
    except SetupError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(err),
        ) from err
    return ValidatorSecretService(keyring, clock=clock)


def get_signer() -> ValidatorSigner:
    try:
        return get_validator_signer()
    except ConfigurationError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(err),
        ) from err


OperatorDep = Annotated[str, Depends(require_operator)]
ValidatorServiceDep = Annotated[ValidatorSecretService, Depends(get_validator_service)]
SignerDep = Annotated[ValidatorSigner, Depends(get_signer)]
