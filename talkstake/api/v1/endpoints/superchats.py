from fastapi import APIRouter, Depends
from typing import List, Optional

from talkstake.core.dependencies import get_orchestrator
from talkstake.schemas.superchat import SuperchatCreate, SuperchatOut
from talkstake.services.orchestrator import Orchestrator

router = APIRouter()


@router.post("/", response_model=SuperchatOut)
def send_superchat(body: SuperchatCreate, ledger: Orchestrator = Depends(get_orchestrator)):
    """
    Pays a speaker instantly: 5% platform fee, 80% of the rest to the speaker,
    20% to the listeners of the speaker's live session.
    """
    return ledger.send_superchat(body.sender, body.speaker, body.amount, message=body.message)


@router.get("/", response_model=List[SuperchatOut])
def list_superchats(
    speaker: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    ledger: Orchestrator = Depends(get_orchestrator),
):
    return ledger.list_superchats(speaker=speaker, skip=skip, limit=limit)
