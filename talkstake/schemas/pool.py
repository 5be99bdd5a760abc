"""
Yield pool request/response schemas.
"""
from pydantic import Field
from typing import Optional

from talkstake.schemas.common import Amount, CamelModel


class PoolCreate(CamelModel):
    caller: str = Field(..., description="Operator address")
    name: str
    accrual_rate_bps: int = Field(..., description="APY-equivalent rate, e.g. 500 = 5%")
    token: Optional[str] = Field(default=None, description="Defaults to the staking token")


class DepositRequest(CamelModel):
    caller: str
    amount: Amount


class WithdrawRequest(CamelModel):
    caller: str
    recipient: str
    amount: Amount


class PoolOut(CamelModel):
    id: int
    name: str
    token: str
    accrual_rate_bps: int
    principal: Amount
    total_accrued: Amount
    total_retained: Amount
    last_accrual_at: int
    created_at: int


class AccrualOut(CamelModel):
    pool_id: int
    interest: Amount
    principal: Amount
    last_accrual_at: int
