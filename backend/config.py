from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    DEBUG: bool = True
    PORT: int = 5000

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    DB_NAME: str = "ProFirst"

    # Firebase Admin (FB_SERVICE_KEY = service account JSON encoded in base64)
    FB_SERVICE_KEY: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: str = "firebase-service-account.json"

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_CURRENCY: str = "usd"

    # CORS
    CLIENT_DOMAINS: List[str] = [
        "https://pro-first-client.vercel.app",
        "http://localhost:5173",
    ]

    # Parcels
    TRACKING_CODE_PREFIX: str = "PRF"

    # Rate limit for POST /api/parcels and POST /api/payment/confirm
    RATE_LIMIT_WRITES: str = "20/minute"

    model_config = SettingsConfigDict(
        env_file=[".env", "../.env"],
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
