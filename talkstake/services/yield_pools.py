"""
Yield pool registry: named pools with simple-interest accrual and the
per-session 30/70 distribution rule.
"""
import logging

from sqlalchemy.orm import Session

from talkstake.core.config import settings
from talkstake.core.errors import InsufficientFunds, InvalidAmount, NotAuthorized, NotFound
from talkstake.models.session import TalkSession, YieldSettlement
from talkstake.models.yield_pool import PoolAccrual, YieldPool
from talkstake.services.token_ledger import TokenLedger

logger = logging.getLogger(__name__)

YEAR_SECONDS = 365 * 24 * 60 * 60
BPS = 10_000


def is_operator(address: str) -> bool:
    return address.lower() in {a.lower() for a in settings.OPERATOR_ADDRESSES}


def split_yield(total_staked: int, rate_bps: int, participant_bps: int) -> tuple[int, int, int]:
    """Return (yield, distributed, retained) for one session epoch."""
    yield_amount = total_staked * rate_bps // BPS
    distributed = yield_amount * participant_bps // BPS
    return yield_amount, distributed, yield_amount - distributed


def pro_rata(total: int, stakes: list[int]) -> list[int]:
    """
    Split `total` by stake weight. Rounding dust goes to the first entry so
    the shares always sum to exactly `total`.
    """
    staked = sum(stakes)
    if not stakes or staked == 0:
        return [0 for _ in stakes]
    shares = [total * stake // staked for stake in stakes]
    shares[0] += total - sum(shares)
    return shares


class YieldPoolRegistry:
    def __init__(self, db: Session, tokens: TokenLedger):
        self.db = db
        self.tokens = tokens
        self.PARTICIPANT_YIELD_BPS = settings.PARTICIPANT_YIELD_BPS

    def get_pool(self, pool_id: int) -> YieldPool:
        pool = self.db.get(YieldPool, pool_id)
        if pool is None:
            raise NotFound(f"Yield pool {pool_id} not found")
        return pool

    def create_pool(self, caller: str, name: str, token: str, accrual_rate_bps: int, now: int) -> YieldPool:
        if not is_operator(caller):
            raise NotAuthorized(f"{caller} is not an operator")
        if accrual_rate_bps <= 0:
            raise InvalidAmount(f"Accrual rate must be positive, got {accrual_rate_bps} bps")
        if not name or not name.strip():
            raise InvalidAmount("Pool name must not be empty")

        pool = YieldPool(
            name=name.strip(),
            token=token,
            accrual_rate_bps=accrual_rate_bps,
            principal=0,
            total_accrued=0,
            total_retained=0,
            last_accrual_at=now,
            created_at=now,
        )
        self.db.add(pool)
        self.db.flush()
        logger.info(f"Created yield pool {pool.id} '{pool.name}' ({token}, {accrual_rate_bps} bps)")
        return pool

    def deposit_to_pool(self, pool_id: int, caller: str, amount: int) -> YieldPool:
        if amount <= 0:
            raise InvalidAmount(f"Deposit must be positive, got {amount}")
        pool = self.get_pool(pool_id)
        self.tokens.transfer(pool.token, caller, pool.custody_account, amount, memo=f"deposit pool {pool.id}")
        pool.principal = pool.principal + amount
        logger.info(f"Pool {pool.id}: {caller} deposited {amount}, principal {pool.principal}")
        return pool

    def withdraw_from_pool(self, pool_id: int, caller: str, recipient: str, amount: int) -> YieldPool:
        if not is_operator(caller):
            raise NotAuthorized(f"{caller} is not an operator")
        if amount <= 0:
            raise InvalidAmount(f"Withdrawal must be positive, got {amount}")
        pool = self.get_pool(pool_id)
        if amount > pool.principal:
            raise InsufficientFunds(f"Pool {pool.id} principal is {pool.principal}, requested {amount}")
        self.tokens.transfer(pool.token, pool.custody_account, recipient, amount, memo=f"withdraw pool {pool.id}")
        pool.principal = pool.principal - amount
        logger.info(f"Pool {pool.id}: withdrew {amount} to {recipient}, principal {pool.principal}")
        return pool

    def accrue(self, pool_id: int, now: int) -> int:
        """
        Apply simple interest for the time since the last accrual.
        Returns the interest added; zero or negative elapsed time is a no-op.
        """
        pool = self.get_pool(pool_id)
        elapsed = now - pool.last_accrual_at
        if elapsed <= 0:
            return 0

        interest = pool.principal * pool.accrual_rate_bps * elapsed // (BPS * YEAR_SECONDS)
        pool.principal = pool.principal + interest
        pool.total_accrued = pool.total_accrued + interest
        pool.last_accrual_at = now
        self.tokens.mint(pool.token, pool.custody_account, interest, memo=f"accrual pool {pool.id}")

        if interest > 0:
            self.db.add(PoolAccrual(
                pool_id=pool.id,
                elapsed=elapsed,
                interest=interest,
                principal_after=pool.principal,
                accrued_at=now,
            ))
            logger.info(f"Pool {pool.id}: accrued {interest} over {elapsed}s, principal {pool.principal}")
        return interest

    def settle_session(self, session: TalkSession, now: int) -> YieldSettlement:
        """
        Settle one session epoch: 30% of the yield goes pro-rata to the active
        participants, 70% is folded back into the pool principal.
        """
        pool = self.get_pool(session.pool_id)
        active = session.active_participants()

        yield_amount, distributed, retained = split_yield(
            session.total_staked, pool.accrual_rate_bps, self.PARTICIPANT_YIELD_BPS
        )
        shares = pro_rata(distributed, [p.stake_amount for p in active])
        for participant, share in zip(active, shares):
            participant.yield_share = share
            self.tokens.mint(pool.token, participant.listener, share, memo=f"yield session {session.id}")

        self.tokens.mint(pool.token, pool.custody_account, retained, memo=f"carry-forward session {session.id}")
        pool.principal = pool.principal + retained
        pool.total_retained = pool.total_retained + retained

        settlement = YieldSettlement(
            session_id=session.id,
            pool_id=pool.id,
            total_staked=session.total_staked,
            accrual_rate_bps=pool.accrual_rate_bps,
            yield_amount=yield_amount,
            distributed_amount=distributed,
            retained_amount=retained,
            settled_at=now,
        )
        self.db.add(settlement)
        self.db.flush()

        logger.info(
            f"Session {session.id} settled on pool {pool.id}: yield {yield_amount}, "
            f"distributed {distributed}, retained {retained}"
        )
        return settlement
