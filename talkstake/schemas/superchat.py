from pydantic import Field
from typing import Optional

from talkstake.schemas.common import Amount, CamelModel


class SuperchatCreate(CamelModel):
    sender: str
    speaker: str
    amount: Amount = Field(..., description="Gross amount in payment-token base units")
    message: Optional[str] = None


class SuperchatOut(CamelModel):
    id: int
    sender: str
    speaker: str
    sequence: int
    amount: Amount
    fee: Amount
    speaker_payout: Amount
    listener_share: Amount
    session_id: Optional[int] = None
    message: Optional[str] = None
    created_at: int
