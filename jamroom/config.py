from functools import lru_cache
import os
from pydantic import BaseModel, Field


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    timezone: str = Field(default="Asia/Kolkata", alias="TIMEZONE")

    postgres_db: str = Field(default="jamroom", alias="POSTGRES_DB")
    postgres_user: str = Field(default="jamroom", alias="POSTGRES_USER")
    postgres_password: str = Field(default="jamroom", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    db_connect_timeout: int = Field(default=10, alias="DB_CONNECT_TIMEOUT")
    db_statement_timeout_ms: int = Field(default=15000, alias="DB_STATEMENT_TIMEOUT_MS")
    db_pool_timeout: int = Field(default=8, alias="DB_POOL_TIMEOUT")

    jwt_secret: str = Field(default="secret", alias="JWT_SECRET")
    jwt_expire_min: int = Field(default=43200, alias="JWT_EXPIRE_MIN")

    default_admin_email: str = Field(default="admin@jamroom.com", alias="DEFAULT_ADMIN_EMAIL")
    default_admin_password: str = Field(default="admin123", alias="DEFAULT_ADMIN_PASSWORD")
    default_admin_name: str = Field(default="JamRoom Admin", alias="DEFAULT_ADMIN_NAME")

    smtp_host: str = Field(default="", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_username: str = Field(default="", alias="SMTP_USERNAME")
    smtp_password: str = Field(default="", alias="SMTP_PASSWORD")
    smtp_from_email: str = Field(default="", alias="SMTP_FROM_EMAIL")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")
    smtp_timeout: int = Field(default=10, alias="SMTP_TIMEOUT")

    twilio_account_sid: str = Field(default="", alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: str = Field(default="", alias="TWILIO_AUTH_TOKEN")
    twilio_whatsapp_number: str = Field(default="+14155238886", alias="TWILIO_WHATSAPP_NUMBER")
    notification_timeout: int = Field(default=10, alias="NOTIFICATION_TIMEOUT")

    studio_name: str = Field(default="JamRoom Studio", alias="STUDIO_NAME")
    studio_location: str = Field(default="JamRoom Studio", alias="STUDIO_LOCATION")
    base_url: str = Field(default="http://localhost:8000", alias="BASE_URL")

    fallback_price: float = Field(default=500, alias="FALLBACK_PRICE")

    class Config:
        populate_by_name = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**os.environ)
