import pytest

from conftest import ALICE, BOB, CAROL, DAVE, KDA, OPERATOR, SPEAKER, T0
from talkstake.core.errors import (
    DuplicateParticipant,
    InsufficientFunds,
    InsufficientStake,
    InvalidAmount,
    InvalidAddress,
    InvalidState,
    NotAuthorized,
    NotFound,
    SessionFull,
    SessionNotJoinable,
    TooEarly,
    TooLate,
)
from talkstake.models.reputation import ReputationRecord
from talkstake.models.session import CANCELLED, COMPLETED, LIVE, SCHEDULED


def schedule(ledger, base_stake=100 * KDA, max_participants=10, pool_id=None, speaker=SPEAKER):
    return ledger.create_session(
        speaker=speaker,
        title="Scaling rollups",
        base_stake=base_stake,
        max_participants=max_participants,
        start_time=T0 + 3600,
        duration=1800,
        pool_id=pool_id,
    )


def assert_stake_invariant(session):
    active = [p for p in session.participants if not p.withdrawn]
    assert session.total_staked == sum(p.stake_amount for p in active)
    assert session.participant_count == len(active)
    assert session.participant_count <= session.max_participants


def test_create_session_prices_by_default_reputation(ledger):
    session = schedule(ledger)

    # New speakers are priced at 4.5 stars: 0.7 + 0.8 * 0.9 = 1.42
    assert session.status == SCHEDULED
    assert session.reputation_multiplier_bps == 14200
    assert session.effective_stake == 142 * KDA
    assert session.total_staked == 0
    assert ledger.get_reputation(SPEAKER)["registered"] is True


def test_create_session_rejects_past_start(ledger):
    with pytest.raises(TooLate):
        ledger.create_session(SPEAKER, "Late", 100 * KDA, 5, T0, 600)


def test_create_session_rejects_bad_address(ledger):
    with pytest.raises(InvalidAddress):
        ledger.create_session("not-an-address", "Talk", 100 * KDA, 5, T0 + 60, 600)


def test_join_escrows_stake(ledger, neutral_speaker):
    session = schedule(ledger)
    ledger.join_session(session.id, ALICE, 100 * KDA)

    assert ledger.get_balances(ALICE)["KDA"] == 900 * KDA
    assert ledger.tokens.balance_of("KDA", session.escrow_account) == 100 * KDA
    session = ledger.get_session_data(session.id)
    assert session.participant_count == 1
    assert_stake_invariant(session)


def test_join_rejections(ledger, neutral_speaker):
    session = schedule(ledger, max_participants=1)

    with pytest.raises(InsufficientStake):
        ledger.join_session(session.id, ALICE, 99 * KDA)
    with pytest.raises(NotAuthorized):
        ledger.join_session(session.id, SPEAKER, 100 * KDA)

    ledger.join_session(session.id, ALICE, 100 * KDA)
    with pytest.raises(DuplicateParticipant):
        ledger.join_session(session.id, ALICE, 100 * KDA)
    with pytest.raises(NotFound):
        ledger.join_session(999, BOB, 100 * KDA)


def test_join_beyond_capacity_rejected(ledger, neutral_speaker):
    session = schedule(ledger, max_participants=1)

    ledger.join_session(session.id, ALICE, 100 * KDA)
    with pytest.raises(SessionFull):
        ledger.join_session(session.id, BOB, 100 * KDA)

    # The losing join moved nothing
    assert ledger.get_balances(BOB)["KDA"] == 1_000 * KDA
    assert_stake_invariant(ledger.get_session_data(session.id))


def test_failed_join_leaves_no_partial_state(ledger, neutral_speaker, db):
    session = schedule(ledger)
    ledger.tokens.debit("KDA", DAVE, 950 * KDA)
    db.commit()

    with pytest.raises(InsufficientFunds):
        ledger.join_session(session.id, DAVE, 100 * KDA)

    session = ledger.get_session_data(session.id)
    assert session.participants == []
    assert session.total_staked == 0
    assert ledger.get_balances(DAVE)["KDA"] == 50 * KDA


def test_leave_refunds_before_start(ledger, neutral_speaker):
    session = schedule(ledger)
    ledger.join_session(session.id, ALICE, 100 * KDA)
    ledger.join_session(session.id, BOB, 120 * KDA)

    participant = ledger.leave_session(session.id, ALICE)

    assert participant.withdrawn is True
    assert ledger.get_balances(ALICE)["KDA"] == 1_000 * KDA
    session = ledger.get_session_data(session.id)
    assert session.total_staked == 120 * KDA
    assert_stake_invariant(session)

    with pytest.raises(NotAuthorized):
        ledger.leave_session(session.id, ALICE)


def test_start_window(ledger, clock, neutral_speaker):
    session = schedule(ledger)

    with pytest.raises(TooEarly):
        ledger.start_session(session.id, SPEAKER)

    clock.advance(3600)
    with pytest.raises(NotAuthorized):
        ledger.start_session(session.id, ALICE)

    session = ledger.start_session(session.id, SPEAKER)
    assert session.status == LIVE
    assert session.started_at == T0 + 3600

    with pytest.raises(InvalidState):
        ledger.start_session(session.id, SPEAKER)


def test_start_after_slot_is_too_late(ledger, clock, neutral_speaker):
    session = schedule(ledger)
    clock.advance(3600 + 1800)

    with pytest.raises(TooLate):
        ledger.start_session(session.id, SPEAKER)


def test_join_after_start_rejected(ledger, clock, neutral_speaker):
    session = schedule(ledger)
    clock.advance(3600)
    ledger.start_session(session.id, SPEAKER)

    with pytest.raises(SessionNotJoinable):
        ledger.join_session(session.id, ALICE, 100 * KDA)
    with pytest.raises(InvalidState):
        ledger.leave_session(session.id, ALICE)


def test_complete_returns_stakes(ledger, clock, neutral_speaker):
    session = schedule(ledger)
    ledger.join_session(session.id, ALICE, 100 * KDA)
    ledger.join_session(session.id, BOB, 100 * KDA)
    clock.advance(3600)
    ledger.start_session(session.id, SPEAKER)
    clock.advance(1200)

    session = ledger.complete_session(
        session.id, SPEAKER, "bafy-metadata", audio_reference="bafy-audio", chat_log_reference="bafy-chat"
    )

    assert session.status == COMPLETED
    assert session.completed_at == T0 + 4800
    assert session.metadata_reference == "bafy-metadata"
    assert session.audio_reference == "bafy-audio"
    assert session.settlement is None
    assert all(p.payout_claimed for p in session.participants)
    assert ledger.get_balances(ALICE)["KDA"] == 1_000 * KDA
    assert ledger.tokens.balance_of("KDA", session.escrow_account) == 0
    assert_stake_invariant(session)


def test_complete_requires_live_speaker(ledger, clock, neutral_speaker):
    session = schedule(ledger)

    with pytest.raises(InvalidState):
        ledger.complete_session(session.id, SPEAKER, "bafy-metadata")

    clock.advance(3600)
    ledger.start_session(session.id, SPEAKER)
    with pytest.raises(NotAuthorized):
        ledger.complete_session(session.id, CAROL, "bafy-metadata")


def test_cancel_refunds_everyone(ledger, neutral_speaker):
    session = schedule(ledger)
    ledger.join_session(session.id, ALICE, 100 * KDA)
    ledger.join_session(session.id, BOB, 150 * KDA)

    with pytest.raises(NotAuthorized):
        ledger.cancel_session(session.id, CAROL)

    session = ledger.cancel_session(session.id, OPERATOR)

    assert session.status == CANCELLED
    assert ledger.get_balances(ALICE)["KDA"] == 1_000 * KDA
    assert ledger.get_balances(BOB)["KDA"] == 1_000 * KDA
    assert ledger.tokens.balance_of("KDA", session.escrow_account) == 0
    assert_stake_invariant(session)

    with pytest.raises(InvalidState):
        ledger.cancel_session(session.id, SPEAKER)
    with pytest.raises(SessionNotJoinable):
        ledger.join_session(session.id, CAROL, 100 * KDA)


def test_list_sessions_filters(ledger, neutral_speaker):
    first = schedule(ledger)
    schedule(ledger)
    ledger.cancel_session(first.id, SPEAKER)

    assert len(ledger.list_sessions()) == 2
    assert [s.id for s in ledger.list_sessions(status=CANCELLED)] == [first.id]
    assert len(ledger.list_sessions(speaker=SPEAKER.lower())) == 2
    assert ledger.list_sessions(speaker=ALICE) == []


def test_stake_that_prices_to_zero_rejected(ledger, db):
    # A speaker rated 0 sits at the 0.7x floor, so a base stake of 1 rounds to 0
    db.add(ReputationRecord(speaker=SPEAKER, rating_sum=0, rating_count=3, registered_at=T0))
    db.commit()

    with pytest.raises(InvalidAmount):
        schedule(ledger, base_stake=1)

    session = schedule(ledger, base_stake=2)
    assert session.effective_stake == 1
    with pytest.raises(InvalidAmount):
        ledger.join_session(session.id, ALICE, 0)

    assert ledger.get_session_data(session.id).participants == []


def test_overlong_archive_reference_rejected(ledger, clock, neutral_speaker):
    session = schedule(ledger)
    ledger.join_session(session.id, ALICE, 100 * KDA)
    clock.advance(3600)
    ledger.start_session(session.id, SPEAKER)

    with pytest.raises(InvalidAmount):
        ledger.complete_session(session.id, SPEAKER, "bafy-metadata", audio_reference="a" * 256)

    session = ledger.get_session_data(session.id)
    assert session.status == LIVE
    assert session.audio_reference is None

    session = ledger.complete_session(session.id, SPEAKER, "m" * 255)
    assert session.status == COMPLETED
