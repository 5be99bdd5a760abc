from sqlalchemy import Column, Integer, BigInteger, String, ForeignKey

from talkstake.core.database import Base, TokenAmount


class YieldPool(Base):
    __tablename__ = "yield_pools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    token = Column(String(16), nullable=False)
    accrual_rate_bps = Column(Integer, nullable=False)  # APY-equivalent, e.g. 500 = 5%

    principal = Column(TokenAmount, default=0, nullable=False)
    total_accrued = Column(TokenAmount, default=0, nullable=False)
    total_retained = Column(TokenAmount, default=0, nullable=False)  # carry-forward from sessions

    last_accrual_at = Column(BigInteger, nullable=False)
    created_at = Column(BigInteger, nullable=False)

    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    @property
    def custody_account(self) -> str:
        return f"pool:{self.id}"


class PoolAccrual(Base):
    __tablename__ = "pool_accruals"

    id = Column(Integer, primary_key=True, index=True)
    pool_id = Column(Integer, ForeignKey("yield_pools.id"), nullable=False, index=True)
    elapsed = Column(BigInteger, nullable=False)
    interest = Column(TokenAmount, nullable=False)
    principal_after = Column(TokenAmount, nullable=False)
    accrued_at = Column(BigInteger, nullable=False)
