import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talkstake.api.v1.router import api_router
from talkstake.core.config import settings
from talkstake.core.database import Base, engine
from talkstake.core.errors import LedgerError
from talkstake.models import reputation, session, superchat, token, yield_pool  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting ledger service...")
    Base.metadata.create_all(bind=engine)
    logger.info(f"Staking token {settings.STAKING_TOKEN}, payment token {settings.PAYMENT_TOKEN}")
    yield
    logger.info("Shutting down ledger service...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Staking, yield and superchat ledger for reputation-priced talk sessions",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


@app.get("/test")
def test_endpoint():
    return {
        "service": "talkstake",
        "status": "ok",
        "message": "hello from talkstake ledger",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
