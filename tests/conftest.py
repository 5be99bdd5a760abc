import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from talkstake.main import app
from talkstake.core.blockchain import get_clock
from talkstake.core.database import Base, get_db
from talkstake.models.reputation import ReputationRecord
from talkstake.services.orchestrator import Orchestrator
from talkstake.services.token_ledger import TokenLedger

# Use in-memory SQLite for tests
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Hardhat default accounts
OPERATOR = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
SPEAKER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
ALICE = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
BOB = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"
CAROL = "0x15d34AAf54267DB7D7c367839AAf71A00a2C6A65"
DAVE = "0x9965507D1a55bcC2695C58ba16FB37d819B0A4dc"

KDA = 10 ** 18
PYUSD = 10 ** 6
T0 = 1_700_000_000


class FakeClock:
    """Deterministic ledger time for tests."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    # Fresh schema per test
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()

    # SEED DATA
    tokens = TokenLedger(session)
    for account in (OPERATOR, SPEAKER, ALICE, BOB, CAROL, DAVE):
        tokens.mint("KDA", account, 1_000 * KDA, memo="faucet")
        tokens.mint("PYUSD", account, 1_000 * PYUSD, memo="faucet")
    session.commit()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def ledger(db, clock):
    return Orchestrator(db, clock=clock)


@pytest.fixture
def neutral_speaker(db):
    """SPEAKER with a rating history that prices sessions at exactly 1.0x."""
    db.add(ReputationRecord(speaker=SPEAKER, rating_sum=375, rating_count=2, registered_at=T0))
    db.commit()
    return SPEAKER


@pytest.fixture
def client(db, clock):
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
