import pytest

from conftest import ALICE, BOB, CAROL, KDA, OPERATOR, SPEAKER, T0
from talkstake.core.errors import InsufficientFunds, InvalidAmount, NotAuthorized, NotFound
from talkstake.models.yield_pool import PoolAccrual
from talkstake.services.yield_pools import YEAR_SECONDS, pro_rata, split_yield


@pytest.fixture
def pool(ledger):
    return ledger.create_pool(OPERATOR, "TalkStake Main Pool", 500)


def test_split_yield():
    assert split_yield(200 * KDA, 500, 3000) == (10 * KDA, 3 * KDA, 7 * KDA)
    assert split_yield(0, 500, 3000) == (0, 0, 0)


def test_pro_rata_assigns_dust_to_first():
    assert pro_rata(10, [1, 1, 1]) == [4, 3, 3]
    assert pro_rata(3 * KDA, [100, 100]) == [15 * KDA // 10, 15 * KDA // 10]
    assert pro_rata(5, [0, 0]) == [0, 0]
    assert pro_rata(5, []) == []


def test_create_pool_is_operator_only(ledger):
    with pytest.raises(NotAuthorized):
        ledger.create_pool(ALICE, "Rogue", 500)
    with pytest.raises(InvalidAmount):
        ledger.create_pool(OPERATOR, "Zero", 0)

    pool = ledger.create_pool(OPERATOR, "Main", 500)
    assert pool.token == "KDA"
    assert pool.principal == 0
    assert pool.last_accrual_at == T0


def test_deposit_and_withdraw(ledger, pool):
    ledger.deposit_to_pool(pool.id, ALICE, 100 * KDA)
    assert ledger.get_pool(pool.id).principal == 100 * KDA
    assert ledger.get_balances(ALICE)["KDA"] == 900 * KDA

    with pytest.raises(NotAuthorized):
        ledger.withdraw_from_pool(pool.id, ALICE, ALICE, 10 * KDA)
    with pytest.raises(InsufficientFunds):
        ledger.withdraw_from_pool(pool.id, OPERATOR, CAROL, 101 * KDA)

    ledger.withdraw_from_pool(pool.id, OPERATOR, CAROL, 40 * KDA)
    assert ledger.get_pool(pool.id).principal == 60 * KDA
    assert ledger.get_balances(CAROL)["KDA"] == 1_040 * KDA


def test_unknown_pool(ledger):
    with pytest.raises(NotFound):
        ledger.deposit_to_pool(42, ALICE, KDA)
    with pytest.raises(NotFound):
        ledger.accrue(42)


def test_accrue_simple_interest(ledger, clock, pool, db):
    ledger.deposit_to_pool(pool.id, OPERATOR, 100 * KDA)
    clock.advance(YEAR_SECONDS)

    interest = ledger.accrue(pool.id)

    assert interest == 5 * KDA
    pool = ledger.get_pool(pool.id)
    assert pool.principal == 105 * KDA
    assert pool.total_accrued == 5 * KDA
    assert pool.last_accrual_at == T0 + YEAR_SECONDS
    assert ledger.tokens.balance_of("KDA", pool.custody_account) == 105 * KDA
    assert db.query(PoolAccrual).count() == 1


def test_accrue_is_idempotent_at_same_time(ledger, clock, pool):
    ledger.deposit_to_pool(pool.id, OPERATOR, 100 * KDA)
    clock.advance(86400)

    first = ledger.accrue(pool.id)
    principal = ledger.get_pool(pool.id).principal
    second = ledger.accrue(pool.id)

    assert first > 0
    assert second == 0
    assert ledger.get_pool(pool.id).principal == principal


def test_accrue_on_empty_pool_advances_clock(ledger, clock, pool):
    clock.advance(600)

    assert ledger.accrue(pool.id) == 0
    assert ledger.get_pool(pool.id).last_accrual_at == T0 + 600


def test_session_yield_settlement(ledger, clock, pool, neutral_speaker):
    session = ledger.create_session(SPEAKER, "Yield epoch", 100 * KDA, 5, T0 + 60, 600, pool_id=pool.id)
    assert session.effective_stake == 100 * KDA

    ledger.join_session(session.id, ALICE, 100 * KDA)
    ledger.join_session(session.id, BOB, 100 * KDA)
    assert session.total_staked == 200 * KDA

    clock.advance(60)
    ledger.start_session(session.id, SPEAKER)
    session = ledger.complete_session(session.id, SPEAKER, "bafy-epoch")

    settlement = session.settlement
    assert settlement.yield_amount == 10 * KDA
    assert settlement.distributed_amount == 3 * KDA
    assert settlement.retained_amount == 7 * KDA

    alice, bob = session.participants
    assert alice.yield_share == 15 * KDA // 10
    assert bob.yield_share == 15 * KDA // 10
    assert alice.yield_share + bob.yield_share == settlement.distributed_amount

    # Stake returned plus yield share
    assert ledger.get_balances(ALICE)["KDA"] == 1_000 * KDA + 15 * KDA // 10
    pool = ledger.get_pool(pool.id)
    assert pool.principal == 7 * KDA
    assert pool.total_retained == 7 * KDA


def test_session_with_missing_pool_rejected(ledger):
    with pytest.raises(NotFound):
        ledger.create_session(SPEAKER, "Nowhere", 100 * KDA, 5, T0 + 60, 600, pool_id=7)


def test_retained_yield_compounds_into_next_accrual(ledger, clock, pool, neutral_speaker):
    session = ledger.create_session(SPEAKER, "Carry-forward", 100 * KDA, 5, T0 + 60, 600, pool_id=pool.id)
    ledger.join_session(session.id, ALICE, 100 * KDA)
    ledger.join_session(session.id, BOB, 100 * KDA)
    clock.advance(60)
    ledger.start_session(session.id, SPEAKER)
    ledger.complete_session(session.id, SPEAKER, "bafy-epoch")

    # The pool had no deposits; its whole principal is the 70% carry-forward
    assert ledger.get_pool(pool.id).principal == 7 * KDA

    ledger.accrue(pool.id)
    principal = ledger.get_pool(pool.id).principal
    assert principal >= 7 * KDA

    clock.advance(YEAR_SECONDS)
    interest = ledger.accrue(pool.id)

    # A full year at 5% on a principal that includes the carry-forward
    assert interest == principal * 500 // 10_000
    assert interest >= 7 * KDA * 500 // 10_000
    assert ledger.get_pool(pool.id).principal == principal + interest
