from fastapi import APIRouter, Depends
from typing import List

from talkstake.core.dependencies import get_orchestrator
from talkstake.schemas.pool import AccrualOut, DepositRequest, PoolCreate, PoolOut, WithdrawRequest
from talkstake.services.orchestrator import Orchestrator

router = APIRouter()


@router.post("/", response_model=PoolOut)
def create_pool(body: PoolCreate, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.create_pool(body.caller, body.name, body.accrual_rate_bps, token=body.token)


@router.get("/", response_model=List[PoolOut])
def list_pools(ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.list_pools()


@router.get("/{pool_id}", response_model=PoolOut)
def get_pool(pool_id: int, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.get_pool(pool_id)


@router.post("/{pool_id}/deposit", response_model=PoolOut)
def deposit(pool_id: int, body: DepositRequest, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.deposit_to_pool(pool_id, body.caller, body.amount)


@router.post("/{pool_id}/withdraw", response_model=PoolOut)
def withdraw(pool_id: int, body: WithdrawRequest, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.withdraw_from_pool(pool_id, body.caller, body.recipient, body.amount)


@router.post("/{pool_id}/accrue", response_model=AccrualOut)
def accrue(pool_id: int, ledger: Orchestrator = Depends(get_orchestrator)):
    """
    Applies simple interest since the last accrual. Calling it twice in the
    same second adds nothing.
    """
    interest = ledger.accrue(pool_id)
    pool = ledger.get_pool(pool_id)
    return AccrualOut(
        pool_id=pool.id,
        interest=interest,
        principal=pool.principal,
        last_accrual_at=pool.last_accrual_at,
    )
