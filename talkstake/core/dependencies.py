"""Dependency injection utilities for FastAPI"""

from fastapi import Depends
from sqlalchemy.orm import Session

from talkstake.core.blockchain import get_clock
from talkstake.core.database import get_db
from talkstake.services.orchestrator import Orchestrator


def get_orchestrator(db: Session = Depends(get_db), clock=Depends(get_clock)) -> Orchestrator:
    """Get an Orchestrator bound to the request's database session"""
    return Orchestrator(db, clock=clock)
