"""
Session registry: the session lifecycle state machine, stake escrow and roster.

    scheduled -> live -> completed
    scheduled -> cancelled
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from talkstake.core.config import settings
from talkstake.core.errors import (
    DuplicateParticipant,
    InsufficientStake,
    InvalidAmount,
    InvalidState,
    NotAuthorized,
    NotFound,
    SessionFull,
    SessionNotJoinable,
    TooEarly,
    TooLate,
    UnregisteredSpeaker,
)
from talkstake.models.session import (
    CANCELLED,
    COMPLETED,
    LIVE,
    SCHEDULED,
    Participant,
    TalkSession,
)
from talkstake.services.reputation_ledger import ReputationLedger
from talkstake.services.token_ledger import TokenLedger
from talkstake.services.yield_pools import BPS, YieldPoolRegistry, is_operator, pro_rata

logger = logging.getLogger(__name__)

# Legal lifecycle edges
TRANSITIONS = {
    SCHEDULED: (LIVE, CANCELLED),
    LIVE: (COMPLETED,),
    COMPLETED: (),
    CANCELLED: (),
}


class SessionRegistry:
    def __init__(self, db: Session, tokens: TokenLedger, reputation: ReputationLedger, pools: YieldPoolRegistry):
        self.db = db
        self.tokens = tokens
        self.reputation = reputation
        self.pools = pools
        self.STAKING_TOKEN = settings.STAKING_TOKEN
        self.PAYMENT_TOKEN = settings.PAYMENT_TOKEN

    def get_session(self, session_id: int, lock: bool = False) -> TalkSession:
        query = self.db.query(TalkSession).filter(TalkSession.id == session_id)
        if lock:
            # Row lock where the backend supports it; the version counter covers the rest
            query = query.with_for_update()
        session = query.first()
        if session is None:
            raise NotFound(f"Session {session_id} not found")
        return session

    def live_session_for(self, speaker: str) -> Optional[TalkSession]:
        return (
            self.db.query(TalkSession)
            .filter(TalkSession.speaker == speaker, TalkSession.status == LIVE)
            .order_by(TalkSession.started_at.desc())
            .first()
        )

    def has_hosted(self, speaker: str) -> bool:
        return self.db.query(TalkSession.id).filter(TalkSession.speaker == speaker).first() is not None

    def _transition(self, session: TalkSession, target: str) -> None:
        if target not in TRANSITIONS[session.status]:
            raise InvalidState(f"Session {session.id} cannot move from {session.status} to {target}")
        logger.info(f"Session {session.id}: {session.status} -> {target}")
        session.status = target

    def _get_participant(self, session: TalkSession, listener: str) -> Optional[Participant]:
        for participant in session.participants:
            if participant.listener == listener:
                return participant
        return None

    def _return_stake(self, session: TalkSession, participant: Participant, memo: str) -> None:
        self.tokens.transfer(
            self.STAKING_TOKEN, session.escrow_account, participant.listener, participant.stake_amount, memo=memo
        )

    def create_session(self, speaker: str, title: str, base_stake: int, max_participants: int,
                       start_time: int, duration: int, now: int, pool_id: Optional[int] = None) -> TalkSession:
        if not title or not title.strip():
            raise InvalidAmount("Session title must not be empty")
        if base_stake <= 0:
            raise InvalidAmount(f"Base stake must be positive, got {base_stake}")
        if max_participants < 1:
            raise InvalidAmount(f"A session needs at least one seat, got {max_participants}")
        if duration <= 0:
            raise InvalidAmount(f"Duration must be positive, got {duration}")
        if start_time <= now:
            raise TooLate(f"Start time {start_time} is not in the future (now {now})")

        if not self.reputation.is_registered(speaker):
            if not settings.AUTO_REGISTER_SPEAKERS:
                raise UnregisteredSpeaker(f"{speaker} is not a registered speaker")
            self.reputation.register_speaker(speaker, now)

        if pool_id is not None:
            pool = self.pools.get_pool(pool_id)
            if pool.token != self.STAKING_TOKEN:
                raise InvalidState(f"Pool {pool.id} holds {pool.token}, sessions stake {self.STAKING_TOKEN}")

        multiplier_bps = self.reputation.reputation_multiplier_bps(speaker)
        effective_stake = base_stake * multiplier_bps // BPS
        if effective_stake <= 0:
            raise InvalidAmount(f"Base stake {base_stake} prices to zero at x{multiplier_bps / BPS:.2f}")

        session = TalkSession(
            speaker=speaker,
            title=title.strip(),
            base_stake=base_stake,
            reputation_multiplier_bps=multiplier_bps,
            effective_stake=effective_stake,
            max_participants=max_participants,
            participant_count=0,
            total_staked=0,
            start_time=start_time,
            duration=duration,
            status=SCHEDULED,
            pool_id=pool_id,
            listener_rewards=0,
            created_at=now,
        )
        self.db.add(session)
        self.db.flush()
        logger.info(
            f"Session {session.id} '{session.title}' created by {speaker}: "
            f"stake {session.effective_stake} (x{multiplier_bps / BPS:.2f}), {max_participants} seats"
        )
        return session

    def join_session(self, session_id: int, listener: str, stake_amount: int, now: int) -> Participant:
        if stake_amount <= 0:
            raise InvalidAmount(f"Stake must be positive, got {stake_amount}")
        session = self.get_session(session_id, lock=True)
        if session.status != SCHEDULED:
            raise SessionNotJoinable(f"Session {session_id} is {session.status}")
        if listener == session.speaker:
            raise NotAuthorized("Speakers cannot join their own session")
        if self._get_participant(session, listener) is not None:
            raise DuplicateParticipant(f"{listener} already joined session {session_id}")
        if session.participant_count >= session.max_participants:
            raise SessionFull(f"Session {session_id} is full ({session.max_participants} seats)")
        if stake_amount < session.effective_stake:
            raise InsufficientStake(f"Stake {stake_amount} is below the requirement {session.effective_stake}")

        self.tokens.transfer(
            self.STAKING_TOKEN, listener, session.escrow_account, stake_amount, memo=f"stake session {session.id}"
        )
        participant = Participant(
            session=session,
            listener=listener,
            stake_amount=stake_amount,
            joined_at=now,
            withdrawn=False,
            payout_claimed=False,
            yield_share=0,
            reward_share=0,
        )
        self.db.add(participant)
        session.total_staked = session.total_staked + stake_amount
        session.participant_count = session.participant_count + 1
        self.db.flush()

        logger.info(
            f"Session {session.id}: {listener} staked {stake_amount} "
            f"({session.participant_count}/{session.max_participants})"
        )
        return participant

    def leave_session(self, session_id: int, listener: str) -> Participant:
        session = self.get_session(session_id, lock=True)
        if session.status != SCHEDULED:
            raise InvalidState(f"Session {session_id} is {session.status}, stakes are locked")
        participant = self._get_participant(session, listener)
        if participant is None or participant.withdrawn:
            raise NotAuthorized(f"{listener} holds no seat in session {session_id}")

        self._return_stake(session, participant, memo=f"leave session {session.id}")
        participant.withdrawn = True
        session.total_staked = session.total_staked - participant.stake_amount
        session.participant_count = session.participant_count - 1
        self.db.flush()
        logger.info(f"Session {session.id}: {listener} left, refunded {participant.stake_amount}")
        return participant

    def start_session(self, session_id: int, caller: str, now: int) -> TalkSession:
        session = self.get_session(session_id)
        if caller != session.speaker:
            raise NotAuthorized(f"Only the speaker can start session {session_id}")
        if session.status != SCHEDULED:
            raise InvalidState(f"Session {session_id} is {session.status}")
        if now < session.start_time:
            raise TooEarly(f"Session {session_id} starts at {session.start_time} (now {now})")
        if now >= session.end_time:
            raise TooLate(f"Session {session_id} slot ended at {session.end_time}")

        self._transition(session, LIVE)
        session.started_at = now
        self.db.flush()
        return session

    def complete_session(self, session_id: int, caller: str, metadata_reference: str, now: int,
                         audio_reference: Optional[str] = None,
                         chat_log_reference: Optional[str] = None) -> TalkSession:
        session = self.get_session(session_id, lock=True)
        if caller != session.speaker:
            raise NotAuthorized(f"Only the speaker can complete session {session_id}")
        if session.status != LIVE:
            raise InvalidState(f"Session {session_id} is {session.status}, only live sessions complete")
        if not metadata_reference:
            raise InvalidAmount("A metadata reference is required to complete a session")
        for reference in (metadata_reference, audio_reference, chat_log_reference):
            if reference and len(reference) > settings.ARCHIVE_REFERENCE_MAX_LENGTH:
                raise InvalidAmount(f"Archive reference exceeds {settings.ARCHIVE_REFERENCE_MAX_LENGTH} characters")

        # Yield is settled before the status flips so the snapshot is final
        if session.pool_id is not None:
            self.pools.settle_session(session, now)
        self._distribute_listener_rewards(session)

        # total_staked is kept as the session's audit figure; escrow drains to zero
        for participant in session.active_participants():
            if participant.payout_claimed:
                continue
            self._return_stake(session, participant, memo=f"return stake session {session.id}")
            participant.payout_claimed = True

        session.metadata_reference = metadata_reference
        session.audio_reference = audio_reference
        session.chat_log_reference = chat_log_reference
        session.completed_at = now
        self._transition(session, COMPLETED)
        self.db.flush()
        return session

    def _distribute_listener_rewards(self, session: TalkSession) -> None:
        rewards = session.listener_rewards
        if rewards == 0:
            return
        active = session.active_participants()
        if not active:
            self.tokens.transfer(
                self.PAYMENT_TOKEN, session.rewards_account, settings.UNATTRIBUTED_ACCOUNT, rewards,
                memo=f"unclaimed rewards session {session.id}",
            )
            logger.info(f"Session {session.id}: no listeners, {rewards} rewards moved to unattributed")
            return

        shares = pro_rata(rewards, [p.stake_amount for p in active])
        for participant, share in zip(active, shares):
            participant.reward_share = share
            self.tokens.transfer(
                self.PAYMENT_TOKEN, session.rewards_account, participant.listener, share,
                memo=f"listener reward session {session.id}",
            )
        logger.info(f"Session {session.id}: distributed {rewards} listener rewards to {len(active)} listeners")

    def cancel_session(self, session_id: int, caller: str, now: int) -> TalkSession:
        session = self.get_session(session_id, lock=True)
        if caller != session.speaker and not is_operator(caller):
            raise NotAuthorized(f"{caller} cannot cancel session {session_id}")
        if session.status != SCHEDULED:
            raise InvalidState(f"Session {session_id} is {session.status}, only scheduled sessions cancel")

        for participant in session.active_participants():
            self._return_stake(session, participant, memo=f"refund cancelled session {session.id}")
            participant.payout_claimed = True

        session.cancelled_at = now
        self._transition(session, CANCELLED)
        self.db.flush()
        return session
