import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from talkstake.core.config import settings
from talkstake.core.database import engine, Base, SessionLocal
from talkstake.models import reputation, session, superchat, token  # noqa: F401
from talkstake.models.yield_pool import YieldPool
from talkstake.services.orchestrator import Orchestrator
from talkstake.services.token_ledger import TokenLedger

OPERATOR = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

# Local dev wallets (hardhat default accounts)
DEMO_ACCOUNTS = [
    OPERATOR,
    "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
    "0x90F79bf6EB2c4f870365E785982E1f101E93b906",
    "0x15d34AAf54267DB7D7c367839AAf71A00a2C6A65",
]

KDA = 10 ** 18
PYUSD = 10 ** 6


def init_db():
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    ledger = Orchestrator(db)

    # 1. Seed wallet balances
    tokens = TokenLedger(db)
    if tokens.balance_of(settings.STAKING_TOKEN, OPERATOR) == 0:
        print("Seeding demo balances...")
        for account in DEMO_ACCOUNTS:
            tokens.mint(settings.STAKING_TOKEN, account, 10_000 * KDA, memo="faucet")
            tokens.mint(settings.PAYMENT_TOKEN, account, 1_000 * PYUSD, memo="faucet")
        db.commit()

    # 2. Seed the default yield pool
    if not db.query(YieldPool).first():
        print("Creating default yield pool...")
        pool = ledger.create_pool(OPERATOR, "TalkStake Main Pool", 500)
        ledger.deposit_to_pool(pool.id, OPERATOR, 1_000 * KDA)

    # 3. Register the demo speaker
    ledger.register_speaker(DEMO_ACCOUNTS[1])

    print("Success! Database initialized.")
    db.close()


if __name__ == "__main__":
    init_db()
