from typing import Dict, List

from talkstake.schemas.common import Amount, CamelModel


class BalancesOut(CamelModel):
    account: str
    balances: Dict[str, Amount]


class UserData(CamelModel):
    address: str
    registered_speaker: bool
    average_rating: float
    rating_count: int
    reputation_multiplier_bps: int
    hosted_session_ids: List[int]
    joined_session_ids: List[int]
    superchats_sent: int
    superchats_received: int
    superchat_earnings: Amount
    balances: Dict[str, Amount]


class PlatformStats(CamelModel):
    total_sessions: int
    sessions_by_status: Dict[str, int]
    total_staked_escrow: Amount
    total_pool_principal: Amount
    superchat_count: int
    superchat_volume: Amount
    platform_fees: Amount
    unattributed_listener_rewards: Amount
