"""Token contract interface consumed by the bridge, plus an in-process ledger."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Protocol

from nft_bridge.core.exceptions import AuthorizationError, BridgeError, TokenNotFoundError
from nft_bridge.core.security import normalize_address

logger = logging.getLogger(__name__)


class TokenContract(Protocol):
    """The subset of an ERC-721 contract the bridge depends on."""

    address: str

    def owner_of(self, token_id: int) -> str: ...

    def token_uri(self, token_id: int) -> str: ...

    def burn(self, caller: str, token_id: int) -> None: ...


class TokenLedger:
    """Minimal burnable ERC-721 ledger.

    ``burn`` requires the caller to be the owner, the token's approved address,
    or an operator approved for all of the owner's tokens.
    """

    def __init__(self, address: str) -> None:
        self.address = normalize_address(address)
        self._owners: dict[int, str] = {}
        self._uris: dict[int, str] = {}
        self._approvals: dict[int, str] = {}
        self._operators: set[tuple[str, str]] = set()
        self._lock = Lock()

    def mint(self, to: str, token_id: int, uri: str) -> None:
        with self._lock:
            if token_id in self._owners:
                raise BridgeError(f"Token {token_id} already exists")
            self._owners[token_id] = normalize_address(to)
            self._uris[token_id] = uri

    def owner_of(self, token_id: int) -> str:
        try:
            return self._owners[token_id]
        except KeyError:
            raise TokenNotFoundError(f"Token {token_id} does not exist") from None

    def token_uri(self, token_id: int) -> str:
        if token_id not in self._owners:
            raise TokenNotFoundError(f"Token {token_id} does not exist")
        return self._uris[token_id]

    def approve(self, caller: str, spender: str, token_id: int) -> None:
        with self._lock:
            if self.owner_of(token_id) != normalize_address(caller):
                raise AuthorizationError("Only the token owner may approve")
            self._approvals[token_id] = normalize_address(spender)

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        pair = (normalize_address(caller), normalize_address(operator))
        with self._lock:
            if approved:
                self._operators.add(pair)
            else:
                self._operators.discard(pair)

    def transfer(self, caller: str, to: str, token_id: int) -> None:
        with self._lock:
            owner = self.owner_of(token_id)
            if not self._is_approved_or_owner(normalize_address(caller), owner, token_id):
                raise AuthorizationError("Caller may not transfer this token")
            self._owners[token_id] = normalize_address(to)
            self._approvals.pop(token_id, None)

    def burn(self, caller: str, token_id: int) -> None:
        with self._lock:
            owner = self.owner_of(token_id)
            if not self._is_approved_or_owner(normalize_address(caller), owner, token_id):
                raise AuthorizationError("Caller may not burn this token")
            del self._owners[token_id]
            del self._uris[token_id]
            self._approvals.pop(token_id, None)
        logger.info("Burned token %d", token_id)

    def _is_approved_or_owner(self, caller: str, owner: str, token_id: int) -> bool:
        return (
            caller == owner
            or self._approvals.get(token_id) == caller
            or (owner, caller) in self._operators
        )
