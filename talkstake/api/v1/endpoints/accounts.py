from fastapi import APIRouter, Depends

from talkstake.core.blockchain import to_account
from talkstake.core.dependencies import get_orchestrator
from talkstake.schemas.account import BalancesOut, PlatformStats, UserData
from talkstake.services.orchestrator import Orchestrator

router = APIRouter()


@router.get("/accounts/{address}", response_model=UserData)
def get_user_data(address: str, ledger: Orchestrator = Depends(get_orchestrator)):
    """
    Hosted and joined sessions, reputation and superchat totals for one wallet.
    """
    return ledger.get_user_data(address)


@router.get("/accounts/{address}/balances", response_model=BalancesOut)
def get_balances(address: str, ledger: Orchestrator = Depends(get_orchestrator)):
    balances = ledger.get_balances(address)
    return BalancesOut(account=to_account(address), balances=balances)


@router.get("/stats", response_model=PlatformStats)
def get_platform_stats(ledger: Orchestrator = Depends(get_orchestrator)):
    """
    Returns high-level KPI metrics for the dashboard.
    """
    return ledger.get_platform_stats()
