import logging
from typing import Optional

from sqlalchemy.orm import Session

from talkstake.core.config import settings
from talkstake.core.errors import (
    DuplicateRating,
    InvalidAmount,
    InvalidState,
    NotAuthorized,
    NotFound,
)
from talkstake.models.reputation import ReputationRecord, SessionRating
from talkstake.models.session import COMPLETED, Participant, TalkSession

logger = logging.getLogger(__name__)


class ReputationLedger:
    def __init__(self, db: Session):
        self.db = db
        self.DEFAULT_REPUTATION = settings.DEFAULT_REPUTATION
        self.MAX_RATING = settings.MAX_RATING
        self.FLOOR_BPS = settings.MULTIPLIER_FLOOR_BPS
        self.CEILING_BPS = settings.MULTIPLIER_CEILING_BPS

    def get_record(self, speaker: str) -> Optional[ReputationRecord]:
        return self.db.query(ReputationRecord).filter(ReputationRecord.speaker == speaker).first()

    def is_registered(self, speaker: str) -> bool:
        return self.get_record(speaker) is not None

    def register_speaker(self, speaker: str, now: int) -> ReputationRecord:
        """Create a zero-history record; no-op when the speaker already has one."""
        record = self.get_record(speaker)
        if record is not None:
            return record
        record = ReputationRecord(speaker=speaker, rating_sum=0, rating_count=0, registered_at=now)
        self.db.add(record)
        self.db.flush()
        logger.info(f"Registered speaker {speaker}")
        return record

    def average_scaled(self, speaker: str) -> float:
        """Average rating scaled by 100, clamped to [0, MAX_RATING]."""
        record = self.get_record(speaker)
        if record is None or record.rating_count == 0:
            return float(self.DEFAULT_REPUTATION)
        average = record.rating_sum / record.rating_count
        return max(0.0, min(float(self.MAX_RATING), average))

    def average_rating(self, speaker: str) -> float:
        """Average rating on the 0-5 star scale."""
        return self.average_scaled(speaker) / 100

    def reputation_multiplier_bps(self, speaker: str) -> int:
        """
        Price multiplier in basis points, linear between the floor (rating 0)
        and the ceiling (rating 5). Integer math keeps prices deterministic.
        """
        record = self.get_record(speaker)
        span = self.CEILING_BPS - self.FLOOR_BPS
        if record is None or record.rating_count == 0:
            return self.FLOOR_BPS + span * self.DEFAULT_REPUTATION // self.MAX_RATING

        rating_sum = max(0, min(record.rating_sum, self.MAX_RATING * record.rating_count))
        return self.FLOOR_BPS + span * rating_sum // (self.MAX_RATING * record.rating_count)

    def rate_session(self, session_id: int, rater: str, rating: int, now: int,
                     speaker: Optional[str] = None) -> ReputationRecord:
        session = self.db.get(TalkSession, session_id)
        if session is None:
            raise NotFound(f"Session {session_id} not found")
        if session.status != COMPLETED:
            raise InvalidState(f"Session {session_id} is {session.status}, ratings need a completed session")
        if speaker is not None and speaker != session.speaker:
            raise NotAuthorized(f"{speaker} did not host session {session_id}")

        participant = (
            self.db.query(Participant)
            .filter(Participant.session_id == session_id, Participant.listener == rater)
            .first()
        )
        if participant is None or participant.withdrawn:
            raise NotAuthorized(f"{rater} did not attend session {session_id}")

        already_rated = (
            self.db.query(SessionRating)
            .filter(SessionRating.session_id == session_id, SessionRating.rater == rater)
            .first()
        )
        if already_rated is not None:
            raise DuplicateRating(f"{rater} already rated session {session_id}")

        if rating < 0 or rating > self.MAX_RATING:
            raise InvalidAmount(f"Rating must be within 0..{self.MAX_RATING}, got {rating}")

        record = self.register_speaker(session.speaker, now)
        record.rating_sum = record.rating_sum + rating
        record.rating_count = record.rating_count + 1
        self.db.add(SessionRating(
            session_id=session_id,
            rater=rater,
            speaker=session.speaker,
            rating=rating,
            created_at=now,
        ))
        self.db.flush()

        logger.info(
            f"Session {session_id} rated {rating} by {rater}; "
            f"{session.speaker} now averages {self.average_rating(session.speaker):.2f}"
        )
        return record
