from pydantic import Field
from typing import Optional

from talkstake.schemas.common import CamelModel


class RegisterSpeakerRequest(CamelModel):
    address: str


class RatingCreate(CamelModel):
    rater: str
    rating: int = Field(..., description="Stars scaled by 100, 0..500 (450 = 4.5)")
    speaker: Optional[str] = None


class ReputationOut(CamelModel):
    speaker: str
    registered: bool
    rating_sum: int
    rating_count: int
    average_rating: float
    multiplier_bps: int
