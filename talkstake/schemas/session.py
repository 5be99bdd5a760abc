from pydantic import Field, field_validator
from typing import List, Optional

from talkstake.schemas.common import Amount, CamelModel


class SessionCreate(CamelModel):
    speaker: str = Field(..., description="Speaker wallet address")
    title: str
    base_stake: Amount = Field(..., description="Base stake in staking-token base units")
    max_participants: int
    start_time: int = Field(..., description="Scheduled start, unix seconds")
    duration: int = Field(..., description="Length of the session slot in seconds")
    pool_id: Optional[int] = Field(default=None, description="Yield pool that settles this session")

    @field_validator("title")
    def validate_title(cls, v):
        if not v or not v.strip():
            raise ValueError("Title must not be empty")
        return v.strip()


class JoinRequest(CamelModel):
    listener: str
    stake_amount: Amount


class CallerRequest(CamelModel):
    caller: str


class LeaveRequest(CamelModel):
    listener: str


class CompleteRequest(CamelModel):
    caller: str
    metadata_reference: str = Field(..., description="Opaque archive reference, e.g. a CID")
    audio_reference: Optional[str] = None
    chat_log_reference: Optional[str] = None


class ParticipantOut(CamelModel):
    listener: str
    stake_amount: Amount
    joined_at: int
    withdrawn: bool
    payout_claimed: bool
    yield_share: Amount
    reward_share: Amount


class SettlementOut(CamelModel):
    pool_id: int
    total_staked: Amount
    accrual_rate_bps: int
    yield_amount: Amount
    distributed_amount: Amount
    retained_amount: Amount
    settled_at: int


class SessionOut(CamelModel):
    id: int
    speaker: str
    title: str
    status: str

    base_stake: Amount
    reputation_multiplier_bps: int
    effective_stake: Amount

    max_participants: int
    participant_count: int
    total_staked: Amount
    listener_rewards: Amount

    start_time: int
    duration: int
    pool_id: Optional[int] = None

    metadata_reference: Optional[str] = None
    audio_reference: Optional[str] = None
    chat_log_reference: Optional[str] = None

    created_at: int
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    cancelled_at: Optional[int] = None


class SessionDetail(SessionOut):
    participants: List[ParticipantOut] = []
    settlement: Optional[SettlementOut] = None
