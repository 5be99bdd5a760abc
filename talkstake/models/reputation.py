from sqlalchemy import Column, Integer, BigInteger, String, ForeignKey, UniqueConstraint

from talkstake.core.database import Base


class ReputationRecord(Base):
    """Running rating aggregate for one speaker. Ratings are scaled by 100."""
    __tablename__ = "reputation_records"

    id = Column(Integer, primary_key=True, index=True)
    speaker = Column(String(42), nullable=False, unique=True, index=True)
    rating_sum = Column(BigInteger, default=0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    registered_at = Column(BigInteger, nullable=False)

    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}


class SessionRating(Base):
    __tablename__ = "session_ratings"
    __table_args__ = (
        UniqueConstraint("session_id", "rater", name="uix_session_rater"),
    )

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=False, index=True)
    rater = Column(String(42), nullable=False)
    speaker = Column(String(42), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    created_at = Column(BigInteger, nullable=False)
