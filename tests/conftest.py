# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator

import pytest
from eth_account import Account
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

OWNER_KEY = "0x" + "a1" * 32
OTHER_KEY = "0x" + "b2" * 32
VALIDATOR_KEY = "0x" + "c3" * 32
ADMIN_KEY = "0x" + "d4" * 32

FROM_TOKEN = "0x" + "10" * 20
FROM_BRIDGE = "0x" + "20" * 20
TO_TOKEN = "0x" + "30" * 20
TO_BRIDGE = "0x" + "40" * 20

COMMIT_KEY_0 = bytes(range(32))
INDEX_KEY = bytes(range(32, 64))
CHALLENGE_KEY = bytes(range(64, 96))
CHALLENGE_LIFETIME = 300
START_TIME = 1_700_000_000

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["VALIDATOR_PRIVATE_KEY"] = VALIDATOR_KEY
os.environ["FROM_TOKEN"] = FROM_TOKEN
os.environ["FROM_BRIDGE"] = FROM_BRIDGE
os.environ["TO_TOKEN"] = TO_TOKEN
os.environ["TO_BRIDGE"] = TO_BRIDGE

from nft_bridge.api.v1.dependencies import get_clock  # noqa: E402
from nft_bridge.contracts import BridgeContract, TokenLedger  # noqa: E402
from nft_bridge.core.security import sign_message  # noqa: E402
from nft_bridge.db.session import Base  # noqa: E402
from nft_bridge.db.session import get_db as app_get_session  # noqa: E402
from nft_bridge.main import app as fastapi_app  # noqa: E402
from nft_bridge.services.keyring import KeyRingSnapshot, KeyRingStore  # noqa: E402
from nft_bridge.services.messages import BridgeConfig, request_token_burn_message  # noqa: E402
from nft_bridge.services.validator import ValidatorSecretService, ValidatorSigner  # noqa: E402

OWNER = Account.from_key(OWNER_KEY).address
OTHER = Account.from_key(OTHER_KEY).address
VALIDATOR = Account.from_key(VALIDATOR_KEY).address
ADMIN = Account.from_key(ADMIN_KEY).address


class FakeClock:
    """Manually advanced clock returning whole seconds."""

    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


def rotation_key(generation: int) -> bytes:
    return bytes([generation]) * 32


def sign_burn_request(private_key: str, config: BridgeConfig, owner: str, token_id: int) -> bytes:
    return sign_message(private_key, request_token_burn_message(config, owner, token_id))


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db_session: Session) -> KeyRingStore:
    store = KeyRingStore(db_session)
    store.setup(COMMIT_KEY_0, INDEX_KEY, CHALLENGE_KEY, CHALLENGE_LIFETIME)
    return store


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def keyring() -> KeyRingSnapshot:
    return KeyRingSnapshot.setup(COMMIT_KEY_0, INDEX_KEY, CHALLENGE_KEY, CHALLENGE_LIFETIME)


@pytest.fixture()
def validator(keyring: KeyRingSnapshot, clock: FakeClock) -> ValidatorSecretService:
    return ValidatorSecretService(keyring, clock=clock)


@pytest.fixture()
def bridge_config() -> BridgeConfig:
    return BridgeConfig.create(
        from_token=FROM_TOKEN,
        from_bridge=FROM_BRIDGE,
        to_token=TO_TOKEN,
        to_bridge=TO_BRIDGE,
        validator=VALIDATOR,
    )


@pytest.fixture()
def signer(bridge_config: BridgeConfig) -> ValidatorSigner:
    return ValidatorSigner(VALIDATOR_KEY, bridge_config)


@pytest.fixture()
def token() -> TokenLedger:
    ledger = TokenLedger(FROM_TOKEN)
    ledger.mint(OWNER, 7, "ipfs://token/7")
    ledger.mint(OWNER, 8, "ipfs://token/8")
    ledger.mint(OTHER, 9, "ipfs://token/9")
    return ledger


@pytest.fixture()
def bridge(token: TokenLedger) -> BridgeContract:
    contract = BridgeContract(FROM_BRIDGE, ADMIN)
    contract.initialize(ADMIN, token, TO_TOKEN, TO_BRIDGE)
    contract.set_validator(ADMIN, VALIDATOR)
    token.set_approval_for_all(OWNER, contract.address, True)
    token.set_approval_for_all(OTHER, contract.address, True)
    return contract


@pytest.fixture()
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, db_session: Session, clock: FakeClock) -> Iterator[TestClient]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_clock, None)
