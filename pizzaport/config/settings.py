from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    ENV: str = "dev"                # "dev" / "staging" / "prod"
    SERVICE_NAME: str = "pizzaport"
    ENABLE_ADMIN: bool = True

    DATABASE_URL: str
    DB_ECHO: bool = False
    DB_CREATE_ALL: bool = False     # dev/test only , prod schema is managed out of band

    AUTH_JWT_SECRET: str
    AUTH_JWT_ALGO: str = "HS256"

    RAZORPAY_KEY_ID: str
    RAZORPAY_SECRET_KEY: str
    RAZORPAY_API_BASE: str = "https://api.razorpay.com/v1"
    RAZORPAY_WEBHOOK_SECRET: str
    RAZORPAY_WEBHOOK_PATH: str = "/api/v1/webhooks/razorpay"
    RAZORPAY_TIMEOUT_SECONDS: float = 10.0

    CURRENCY: str = "INR"

    class Config:
        env_file = ".env"
        extra="ignore"

    @field_validator("RAZORPAY_WEBHOOK_SECRET")
    @classmethod
    def webhook_secret_required(cls, v: str) -> str:
        # webhook signatures cannot be checked without it
        if not v or not v.strip():
            raise ValueError("RAZORPAY_WEBHOOK_SECRET must be set")
        return v


config_settings = Settings()
