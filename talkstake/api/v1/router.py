from fastapi import APIRouter
from talkstake.api.v1.endpoints import accounts, pools, reputation, sessions, superchats

api_router = APIRouter()
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(pools.router, prefix="/pools", tags=["pools"])
api_router.include_router(superchats.router, prefix="/superchats", tags=["superchats"])
api_router.include_router(reputation.router, prefix="/reputation", tags=["reputation"])
api_router.include_router(accounts.router, tags=["accounts"])
