from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from talkstake.core.database import Base, TokenAmount


class TokenBalance(Base):
    __tablename__ = "token_balances"
    __table_args__ = (
        UniqueConstraint("token", "account", name="uix_token_account"),
    )

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(16), nullable=False, index=True)  # KDA, PYUSD
    account = Column(String(64), nullable=False, index=True)  # address or custody account
    amount = Column(TokenAmount, default=0, nullable=False)

    # Bumped on every write so concurrent debits cannot both apply
    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}


class TokenTransfer(Base):
    """
    Append-only journal of every balance movement.
    A null sender is an issuance (yield, interest, faucet).
    """
    __tablename__ = "token_transfers"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(16), nullable=False, index=True)
    sender = Column(String(64), nullable=True, index=True)
    recipient = Column(String(64), nullable=False, index=True)
    amount = Column(TokenAmount, nullable=False)
    memo = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
