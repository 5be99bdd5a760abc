"""
Token ledger adapter.

Two independently accounted fungible tokens (staking and payment) kept in
`token_balances`, with every movement journaled to `token_transfers`. The core
only relies on debit/credit/balance_of; transfer and mint are built on them.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from talkstake.core.errors import InsufficientFunds, InvalidAmount
from talkstake.models.token import TokenBalance, TokenTransfer

logger = logging.getLogger(__name__)


class TokenLedger:
    def __init__(self, db: Session):
        self.db = db

    def _get_or_create(self, token: str, account: str) -> TokenBalance:
        balance = (
            self.db.query(TokenBalance)
            .filter(TokenBalance.token == token, TokenBalance.account == account)
            .first()
        )
        if balance is None:
            balance = TokenBalance(token=token, account=account, amount=0)
            self.db.add(balance)
            self.db.flush()
        return balance

    def balance_of(self, token: str, account: str) -> int:
        balance = (
            self.db.query(TokenBalance)
            .filter(TokenBalance.token == token, TokenBalance.account == account)
            .first()
        )
        return balance.amount if balance else 0

    def debit(self, token: str, account: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"Debit amount must not be negative: {amount}")
        balance = self._get_or_create(token, account)
        if balance.amount < amount:
            raise InsufficientFunds(
                f"{account} holds {balance.amount} {token}, needs {amount}"
            )
        balance.amount = balance.amount - amount

    def credit(self, token: str, account: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"Credit amount must not be negative: {amount}")
        balance = self._get_or_create(token, account)
        balance.amount = balance.amount + amount

    def transfer(self, token: str, sender: str, recipient: str, amount: int, memo: Optional[str] = None) -> None:
        """Move `amount` from sender to recipient. Zero-amount transfers are skipped."""
        if amount == 0:
            return
        self.debit(token, sender, amount)
        self.credit(token, recipient, amount)
        self.db.add(TokenTransfer(token=token, sender=sender, recipient=recipient, amount=amount, memo=memo))
        logger.debug(f"[{token}] {sender} -> {recipient}: {amount} ({memo})")

    def mint(self, token: str, recipient: str, amount: int, memo: Optional[str] = None) -> None:
        if amount == 0:
            return
        self.credit(token, recipient, amount)
        self.db.add(TokenTransfer(token=token, sender=None, recipient=recipient, amount=amount, memo=memo))
        logger.debug(f"[{token}] mint -> {recipient}: {amount} ({memo})")

    def balances_for(self, account: str) -> dict:
        rows = self.db.query(TokenBalance).filter(TokenBalance.account == account).all()
        return {row.token: row.amount for row in rows}
