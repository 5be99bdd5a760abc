"""
Superchat intake and the instant fee / speaker / listener split.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from talkstake.core.config import settings
from talkstake.core.errors import InsufficientFunds, InvalidAmount, NotAuthorized, UnregisteredSpeaker
from talkstake.models.superchat import Superchat
from talkstake.services.session_registry import SessionRegistry
from talkstake.services.token_ledger import TokenLedger
from talkstake.services.yield_pools import BPS

logger = logging.getLogger(__name__)


def split_superchat(amount: int, fee_bps: int, speaker_bps: int) -> tuple[int, int, int]:
    """Return (fee, speaker_payout, listener_share); the three always sum to amount."""
    fee = amount * fee_bps // BPS
    speaker_payout = (amount - fee) * speaker_bps // BPS
    return fee, speaker_payout, amount - fee - speaker_payout


class PaymentRouter:
    def __init__(self, db: Session, tokens: TokenLedger, sessions: SessionRegistry):
        self.db = db
        self.tokens = tokens
        self.sessions = sessions
        self.PAYMENT_TOKEN = settings.PAYMENT_TOKEN
        self.FEE_BPS = settings.PLATFORM_FEE_BPS
        self.SPEAKER_BPS = settings.SPEAKER_SHARE_BPS

    def _next_sequence(self, sender: str, speaker: str) -> int:
        latest = (
            self.db.query(func.max(Superchat.sequence))
            .filter(Superchat.sender == sender, Superchat.speaker == speaker)
            .scalar()
        )
        return (latest or 0) + 1

    def send_superchat(self, sender: str, speaker: str, amount: int, now: int,
                       message: Optional[str] = None) -> Superchat:
        if amount <= 0:
            raise InvalidAmount(f"Superchat amount must be positive, got {amount}")
        if message and len(message) > settings.SUPERCHAT_MESSAGE_MAX_LENGTH:
            raise InvalidAmount(f"Message exceeds {settings.SUPERCHAT_MESSAGE_MAX_LENGTH} characters")
        if sender == speaker:
            raise NotAuthorized("Speakers cannot superchat themselves")
        if not self.sessions.has_hosted(speaker):
            raise UnregisteredSpeaker(f"{speaker} has never hosted a session")

        fee, speaker_payout, listener_share = split_superchat(amount, self.FEE_BPS, self.SPEAKER_BPS)

        balance = self.tokens.balance_of(self.PAYMENT_TOKEN, sender)
        if balance < amount:
            raise InsufficientFunds(f"{sender} holds {balance} {self.PAYMENT_TOKEN}, needs {amount}")

        live = self.sessions.live_session_for(speaker)
        self.tokens.transfer(self.PAYMENT_TOKEN, sender, settings.TREASURY_ACCOUNT, fee, memo="superchat fee")
        self.tokens.transfer(self.PAYMENT_TOKEN, sender, speaker, speaker_payout, memo="superchat payout")
        if live is not None:
            self.tokens.transfer(
                self.PAYMENT_TOKEN, sender, live.rewards_account, listener_share,
                memo=f"superchat listener share session {live.id}",
            )
            live.listener_rewards = live.listener_rewards + listener_share
        else:
            self.tokens.transfer(
                self.PAYMENT_TOKEN, sender, settings.UNATTRIBUTED_ACCOUNT, listener_share,
                memo="superchat listener share (unattributed)",
            )

        superchat = Superchat(
            sender=sender,
            speaker=speaker,
            sequence=self._next_sequence(sender, speaker),
            amount=amount,
            fee=fee,
            speaker_payout=speaker_payout,
            listener_share=listener_share,
            session_id=live.id if live is not None else None,
            message=message,
            created_at=now,
        )
        self.db.add(superchat)
        self.db.flush()

        logger.info(
            f"Superchat #{superchat.sequence} {sender} -> {speaker}: {amount} "
            f"(fee {fee}, speaker {speaker_payout}, listeners {listener_share}"
            f"{f' to session {live.id}' if live is not None else ' unattributed'})"
        )
        return superchat
