from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Column Trigger Messaging"
    API_V1_STR: str = "/api/v1"
    CORS_ORIGIN: str = "http://localhost:3000"
    DATABASE_URL: str = "sqlite+aiosqlite:///./column_triggers.db"

    # Outbound WhatsApp text gateway (sendText endpoint)
    WHATSAPP_API_URL: str = "https://ws.koonetxa.cloud/api/sendText"
    WHATSAPP_API_KEY: str = ""
    WHATSAPP_SESSION: str = "default"
    WHATSAPP_DEFAULT_COUNTRY: str = "AR"  # Used to normalize numbers without country code

    # Dispatch poller
    DISPATCH_BATCH_SIZE: int = 50
    DISPATCH_MAX_RETRIES: int = 3
    DISPATCH_RETRY_DELAY_MINUTES: int = 5

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
