"""
Orchestrator - the single mutating entry surface of the ledger core.

Each public method is one atomic unit: every component writes into the same
database session, which is committed when the call succeeds and rolled back
when any step raises. Ordering rules:
  - session state is validated before any balance moves
  - reputation is read at creation time, so ratings only price new sessions
  - yield is settled before a session is marked completed

Sessions, balances, pools and reputation records carry a version counter. A
unit whose reads were overtaken by a concurrent commit fails its flush with
StaleDataError and is re-run from scratch against fresh rows, so the loser of
a race sees the real outcome (SessionFull, InsufficientFunds, ...).
"""
import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from talkstake.core.blockchain import block_timestamp, to_account
from talkstake.core.config import settings
from talkstake.core.errors import Conflict, LedgerError
from talkstake.models.reputation import ReputationRecord
from talkstake.models.session import LIVE, SCHEDULED, Participant, TalkSession
from talkstake.models.superchat import Superchat
from talkstake.models.yield_pool import YieldPool
from talkstake.services.payment_router import PaymentRouter
from talkstake.services.reputation_ledger import ReputationLedger
from talkstake.services.session_registry import SessionRegistry
from talkstake.services.token_ledger import TokenLedger
from talkstake.services.yield_pools import YieldPoolRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Orchestrator:
    def __init__(self, db: Session, clock: Callable[[], int] = block_timestamp):
        self.db = db
        self.clock = clock
        self.attempts = settings.TRANSACTION_ATTEMPTS
        self.tokens = TokenLedger(db)
        self.reputation = ReputationLedger(db)
        self.pools = YieldPoolRegistry(db, self.tokens)
        self.sessions = SessionRegistry(db, self.tokens, self.reputation, self.pools)
        self.payments = PaymentRouter(db, self.tokens, self.sessions)

    def _execute(self, operation: str, unit: Callable[[], T]) -> T:
        for attempt in range(1, self.attempts + 1):
            try:
                result = unit()
                self.db.commit()
                return result
            except LedgerError as e:
                self.db.rollback()
                logger.warning(f"{operation} rejected: {e.code}: {e.message}")
                raise
            except (StaleDataError, IntegrityError) as e:
                # A concurrent commit overtook this unit's reads
                self.db.rollback()
                logger.warning(f"{operation} lost a concurrent update (attempt {attempt}/{self.attempts}): {e}")
            except Exception as e:
                self.db.rollback()
                logger.error(f"{operation} failed: {e}", exc_info=True)
                raise
        raise Conflict(f"{operation} conflicted with concurrent updates {self.attempts} times")

    # --- Sessions ---

    def create_session(self, speaker: str, title: str, base_stake: int, max_participants: int,
                       start_time: int, duration: int, pool_id: Optional[int] = None) -> TalkSession:
        return self._execute("create_session", lambda: self.sessions.create_session(
            speaker=to_account(speaker),
            title=title,
            base_stake=base_stake,
            max_participants=max_participants,
            start_time=start_time,
            duration=duration,
            now=self.clock(),
            pool_id=pool_id,
        ))

    def join_session(self, session_id: int, listener: str, stake_amount: int) -> Participant:
        return self._execute("join_session", lambda: self.sessions.join_session(
            session_id, to_account(listener), stake_amount, self.clock()
        ))

    def leave_session(self, session_id: int, listener: str) -> Participant:
        return self._execute("leave_session", lambda: self.sessions.leave_session(
            session_id, to_account(listener)
        ))

    def start_session(self, session_id: int, caller: str) -> TalkSession:
        return self._execute("start_session", lambda: self.sessions.start_session(
            session_id, to_account(caller), self.clock()
        ))

    def complete_session(self, session_id: int, caller: str, metadata_reference: str,
                         audio_reference: Optional[str] = None,
                         chat_log_reference: Optional[str] = None) -> TalkSession:
        return self._execute("complete_session", lambda: self.sessions.complete_session(
            session_id,
            to_account(caller),
            metadata_reference,
            self.clock(),
            audio_reference=audio_reference,
            chat_log_reference=chat_log_reference,
        ))

    def cancel_session(self, session_id: int, caller: str) -> TalkSession:
        return self._execute("cancel_session", lambda: self.sessions.cancel_session(
            session_id, to_account(caller), self.clock()
        ))

    # --- Payments ---

    def send_superchat(self, sender: str, speaker: str, amount: int, message: Optional[str] = None) -> Superchat:
        return self._execute("send_superchat", lambda: self.payments.send_superchat(
            to_account(sender), to_account(speaker), amount, self.clock(), message=message
        ))

    # --- Reputation ---

    def register_speaker(self, speaker: str) -> ReputationRecord:
        return self._execute("register_speaker", lambda: self.reputation.register_speaker(
            to_account(speaker), self.clock()
        ))

    def rate_session(self, session_id: int, rater: str, rating: int, speaker: Optional[str] = None) -> ReputationRecord:
        return self._execute("rate_session", lambda: self.reputation.rate_session(
            session_id,
            to_account(rater),
            rating,
            self.clock(),
            speaker=to_account(speaker) if speaker is not None else None,
        ))

    # --- Yield pools ---

    def create_pool(self, caller: str, name: str, accrual_rate_bps: int, token: Optional[str] = None) -> YieldPool:
        return self._execute("create_pool", lambda: self.pools.create_pool(
            to_account(caller), name, token or settings.STAKING_TOKEN, accrual_rate_bps, self.clock()
        ))

    def deposit_to_pool(self, pool_id: int, caller: str, amount: int) -> YieldPool:
        return self._execute("deposit_to_pool", lambda: self.pools.deposit_to_pool(
            pool_id, to_account(caller), amount
        ))

    def withdraw_from_pool(self, pool_id: int, caller: str, recipient: str, amount: int) -> YieldPool:
        return self._execute("withdraw_from_pool", lambda: self.pools.withdraw_from_pool(
            pool_id, to_account(caller), to_account(recipient), amount
        ))

    def accrue(self, pool_id: int) -> int:
        return self._execute("accrue", lambda: self.pools.accrue(pool_id, self.clock()))

    # --- Read side ---

    def get_session_data(self, session_id: int) -> TalkSession:
        return self.sessions.get_session(session_id)

    def list_sessions(self, status: Optional[str] = None, speaker: Optional[str] = None,
                      skip: int = 0, limit: int = 50) -> list[TalkSession]:
        query = self.db.query(TalkSession)
        if status:
            query = query.filter(TalkSession.status == status)
        if speaker:
            query = query.filter(TalkSession.speaker == to_account(speaker))
        return (
            query.order_by(TalkSession.start_time.asc())
            .offset(skip)
            .limit(min(limit, 100))
            .all()
        )

    def get_user_data(self, address: str) -> dict:
        account = to_account(address)
        hosted = (
            self.db.query(TalkSession)
            .filter(TalkSession.speaker == account)
            .order_by(TalkSession.id.asc())
            .all()
        )
        joined = (
            self.db.query(Participant)
            .filter(Participant.listener == account)
            .order_by(Participant.id.asc())
            .all()
        )
        sent = self.db.query(Superchat).filter(Superchat.sender == account).all()
        received = self.db.query(Superchat).filter(Superchat.speaker == account).all()
        record = self.reputation.get_record(account)

        return {
            "address": account,
            "registered_speaker": record is not None,
            "average_rating": self.reputation.average_rating(account),
            "rating_count": record.rating_count if record else 0,
            "reputation_multiplier_bps": self.reputation.reputation_multiplier_bps(account),
            "hosted_session_ids": [s.id for s in hosted],
            "joined_session_ids": [p.session_id for p in joined if not p.withdrawn],
            "superchats_sent": len(sent),
            "superchats_received": len(received),
            "superchat_earnings": sum(s.speaker_payout for s in received),
            "balances": self.tokens.balances_for(account),
        }

    def get_reputation(self, speaker: str) -> dict:
        account = to_account(speaker)
        record = self.reputation.get_record(account)
        return {
            "speaker": account,
            "registered": record is not None,
            "rating_sum": record.rating_sum if record else 0,
            "rating_count": record.rating_count if record else 0,
            "average_rating": self.reputation.average_rating(account),
            "multiplier_bps": self.reputation.reputation_multiplier_bps(account),
        }

    def list_pools(self) -> list[YieldPool]:
        return self.db.query(YieldPool).order_by(YieldPool.id.asc()).all()

    def get_pool(self, pool_id: int) -> YieldPool:
        return self.pools.get_pool(pool_id)

    def list_superchats(self, speaker: Optional[str] = None, skip: int = 0, limit: int = 50) -> list[Superchat]:
        query = self.db.query(Superchat)
        if speaker:
            query = query.filter(Superchat.speaker == to_account(speaker))
        return query.order_by(Superchat.id.desc()).offset(skip).limit(min(limit, 100)).all()

    def get_balances(self, account: str) -> dict:
        return self.tokens.balances_for(to_account(account))

    def get_platform_stats(self) -> dict:
        """High-level ledger KPIs."""
        status_counts = dict(
            self.db.query(TalkSession.status, func.count(TalkSession.id))
            .group_by(TalkSession.status)
            .all()
        )
        superchats = self.db.query(Superchat).all()
        open_sessions = self.db.query(TalkSession).filter(TalkSession.status.in_((SCHEDULED, LIVE))).all()
        escrowed = sum(s.total_staked for s in open_sessions)

        return {
            "total_sessions": sum(status_counts.values()),
            "sessions_by_status": status_counts,
            "total_staked_escrow": escrowed,
            "total_pool_principal": sum(p.principal for p in self.list_pools()),
            "superchat_count": len(superchats),
            "superchat_volume": sum(s.amount for s in superchats),
            "platform_fees": self.tokens.balance_of(settings.PAYMENT_TOKEN, settings.TREASURY_ACCOUNT),
            "unattributed_listener_rewards": self.tokens.balance_of(
                settings.PAYMENT_TOKEN, settings.UNATTRIBUTED_ACCOUNT
            ),
        }
