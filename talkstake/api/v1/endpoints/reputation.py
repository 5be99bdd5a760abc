from fastapi import APIRouter, Depends

from talkstake.core.dependencies import get_orchestrator
from talkstake.schemas.reputation import RatingCreate, RegisterSpeakerRequest, ReputationOut
from talkstake.services.orchestrator import Orchestrator

router = APIRouter()


@router.post("/speakers", response_model=ReputationOut)
def register_speaker(body: RegisterSpeakerRequest, ledger: Orchestrator = Depends(get_orchestrator)):
    record = ledger.register_speaker(body.address)
    return ledger.get_reputation(record.speaker)


@router.get("/speakers/{address}", response_model=ReputationOut)
def get_reputation(address: str, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.get_reputation(address)


@router.post("/sessions/{session_id}/ratings", response_model=ReputationOut)
def rate_session(session_id: int, body: RatingCreate, ledger: Orchestrator = Depends(get_orchestrator)):
    """
    Rates a completed session. One rating per attendee; the new average only
    prices the speaker's future sessions.
    """
    record = ledger.rate_session(session_id, body.rater, body.rating, speaker=body.speaker)
    return ledger.get_reputation(record.speaker)
