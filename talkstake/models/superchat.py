from sqlalchemy import Column, Integer, BigInteger, String, ForeignKey, UniqueConstraint

from talkstake.core.config import settings
from talkstake.core.database import Base, TokenAmount


class Superchat(Base):
    """
    Immutable record of one superchat payment.
    fee + speaker_payout + listener_share == amount.
    """
    __tablename__ = "superchats"
    __table_args__ = (
        UniqueConstraint("sender", "speaker", "sequence", name="uix_sender_speaker_sequence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sender = Column(String(42), nullable=False, index=True)
    speaker = Column(String(42), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)

    amount = Column(TokenAmount, nullable=False)
    fee = Column(TokenAmount, nullable=False)
    speaker_payout = Column(TokenAmount, nullable=False)
    listener_share = Column(TokenAmount, nullable=False)

    # Live session credited with the listener share; null when unattributed
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=True, index=True)
    message = Column(String(settings.SUPERCHAT_MESSAGE_MAX_LENGTH), nullable=True)
    created_at = Column(BigInteger, nullable=False)
