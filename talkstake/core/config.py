from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "TalkStake Ledger API"
    API_V1_STR: str = "/api/v1"
    DATABASE_URL: str = "sqlite:///./talkstake.db"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]

    # Token identities on the token ledger
    STAKING_TOKEN: str = "KDA"
    PAYMENT_TOKEN: str = "PYUSD"

    # Internal custody accounts
    TREASURY_ACCOUNT: str = "treasury"
    UNATTRIBUTED_ACCOUNT: str = "unattributed"

    # Addresses allowed to create pools, move pool funds and cancel any session
    OPERATOR_ADDRESSES: list[str] = ["0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"]
    AUTO_REGISTER_SPEAKERS: bool = True

    # Ratings are scaled by 100 (450 = 4.5 stars)
    DEFAULT_REPUTATION: int = 450
    MAX_RATING: int = 500
    MULTIPLIER_FLOOR_BPS: int = 7000
    MULTIPLIER_CEILING_BPS: int = 15000

    PLATFORM_FEE_BPS: int = 500
    SPEAKER_SHARE_BPS: int = 8000
    PARTICIPANT_YIELD_BPS: int = 3000
    SUPERCHAT_MESSAGE_MAX_LENGTH: int = 280
    ARCHIVE_REFERENCE_MAX_LENGTH: int = 255

    # Attempts per ledger call when a concurrent write invalidates its reads
    TRANSACTION_ATTEMPTS: int = 3

    # This configures Pydantic to read variables from the ".env" file
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
