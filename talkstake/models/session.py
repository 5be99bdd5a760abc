"""
Database models for talk sessions, their rosters and yield settlements.
"""
from sqlalchemy import Column, Integer, BigInteger, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from talkstake.core.config import settings
from talkstake.core.database import Base, TokenAmount

SCHEDULED = "scheduled"
LIVE = "live"
COMPLETED = "completed"
CANCELLED = "cancelled"


class TalkSession(Base):
    """A timed talk session and its stake accounting."""
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    speaker = Column(String(42), nullable=False, index=True)
    title = Column(String(255), nullable=False)

    base_stake = Column(TokenAmount, nullable=False)
    reputation_multiplier_bps = Column(Integer, nullable=False)  # captured at creation
    effective_stake = Column(TokenAmount, nullable=False)

    max_participants = Column(Integer, nullable=False)
    participant_count = Column(Integer, default=0, nullable=False)  # active seats only
    total_staked = Column(TokenAmount, default=0, nullable=False)

    start_time = Column(BigInteger, nullable=False)
    duration = Column(BigInteger, nullable=False)
    status = Column(String(16), default=SCHEDULED, nullable=False, index=True)

    pool_id = Column(Integer, ForeignKey("yield_pools.id"), nullable=True)

    # Listener share of superchats received while live (payment token)
    listener_rewards = Column(TokenAmount, default=0, nullable=False)

    # Opaque off-chain archive references, stored unexamined
    metadata_reference = Column(String(settings.ARCHIVE_REFERENCE_MAX_LENGTH), nullable=True)
    audio_reference = Column(String(settings.ARCHIVE_REFERENCE_MAX_LENGTH), nullable=True)
    chat_log_reference = Column(String(settings.ARCHIVE_REFERENCE_MAX_LENGTH), nullable=True)

    created_at = Column(BigInteger, nullable=False)
    started_at = Column(BigInteger, nullable=True)
    completed_at = Column(BigInteger, nullable=True)
    cancelled_at = Column(BigInteger, nullable=True)

    # Optimistic lock: a write based on a stale read fails with StaleDataError
    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    participants = relationship(
        "Participant", back_populates="session", order_by="Participant.id"
    )
    settlement = relationship("YieldSettlement", uselist=False, back_populates="session")

    @property
    def escrow_account(self) -> str:
        return f"session:{self.id}"

    @property
    def rewards_account(self) -> str:
        return f"session:{self.id}:rewards"

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration

    def active_participants(self):
        return [p for p in self.participants if not p.withdrawn]


class Participant(Base):
    __tablename__ = "participants"
    __table_args__ = (
        UniqueConstraint("session_id", "listener", name="uix_session_listener"),
    )

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False, index=True)
    listener = Column(String(42), nullable=False, index=True)
    stake_amount = Column(TokenAmount, nullable=False)
    joined_at = Column(BigInteger, nullable=False)

    withdrawn = Column(Boolean, default=False, nullable=False)  # left before start
    payout_claimed = Column(Boolean, default=False, nullable=False)  # stake returned
    yield_share = Column(TokenAmount, default=0, nullable=False)
    reward_share = Column(TokenAmount, default=0, nullable=False)

    session = relationship("TalkSession", back_populates="participants")


class YieldSettlement(Base):
    """
    Per-session yield snapshot written at completion.
    distributed_amount + retained_amount == yield_amount.
    """
    __tablename__ = "yield_settlements"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False, unique=True)
    pool_id = Column(Integer, ForeignKey("yield_pools.id"), nullable=False, index=True)
    total_staked = Column(TokenAmount, nullable=False)
    accrual_rate_bps = Column(Integer, nullable=False)
    yield_amount = Column(TokenAmount, nullable=False)
    distributed_amount = Column(TokenAmount, nullable=False)
    retained_amount = Column(TokenAmount, nullable=False)
    settled_at = Column(BigInteger, nullable=False)

    session = relationship("TalkSession", back_populates="settlement")
