from fastapi import APIRouter, Depends
from typing import List, Optional

from talkstake.core.dependencies import get_orchestrator
from talkstake.schemas.session import (
    CallerRequest,
    CompleteRequest,
    JoinRequest,
    LeaveRequest,
    ParticipantOut,
    SessionCreate,
    SessionDetail,
    SessionOut,
)
from talkstake.services.orchestrator import Orchestrator

router = APIRouter()


@router.post("/", response_model=SessionOut)
def create_session(body: SessionCreate, ledger: Orchestrator = Depends(get_orchestrator)):
    """
    Creates a scheduled session priced by the speaker's reputation.
    """
    return ledger.create_session(
        speaker=body.speaker,
        title=body.title,
        base_stake=body.base_stake,
        max_participants=body.max_participants,
        start_time=body.start_time,
        duration=body.duration,
        pool_id=body.pool_id,
    )


@router.get("/", response_model=List[SessionOut])
def list_sessions(
    status: Optional[str] = None,
    speaker: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    ledger: Orchestrator = Depends(get_orchestrator),
):
    return ledger.list_sessions(status=status, speaker=speaker, skip=skip, limit=limit)


@router.get("/{session_id}", response_model=SessionDetail)
def get_session(session_id: int, ledger: Orchestrator = Depends(get_orchestrator)):
    """
    Returns the session with its roster and yield settlement snapshot.
    """
    return ledger.get_session_data(session_id)


@router.post("/{session_id}/join", response_model=ParticipantOut)
def join_session(session_id: int, body: JoinRequest, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.join_session(session_id, body.listener, body.stake_amount)


@router.post("/{session_id}/leave", response_model=ParticipantOut)
def leave_session(session_id: int, body: LeaveRequest, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.leave_session(session_id, body.listener)


@router.post("/{session_id}/start", response_model=SessionOut)
def start_session(session_id: int, body: CallerRequest, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.start_session(session_id, body.caller)


@router.post("/{session_id}/complete", response_model=SessionDetail)
def complete_session(session_id: int, body: CompleteRequest, ledger: Orchestrator = Depends(get_orchestrator)):
    """
    Completes a live session: settles yield, pays listener rewards, returns
    stakes and stores the archive references.
    """
    return ledger.complete_session(
        session_id,
        body.caller,
        body.metadata_reference,
        audio_reference=body.audio_reference,
        chat_log_reference=body.chat_log_reference,
    )


@router.post("/{session_id}/cancel", response_model=SessionDetail)
def cancel_session(session_id: int, body: CallerRequest, ledger: Orchestrator = Depends(get_orchestrator)):
    return ledger.cancel_session(session_id, body.caller)
