# app/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Chirp API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "5000"))

    # CORS origin for frontend ("*" or a comma separated list)
    CORS_ORIGIN: str = os.getenv("CORS_ORIGIN", "http://localhost:5173")

    # Token signing secrets and lifetimes
    access_token_secret: str = os.getenv("ACCESS_TOKEN_SECRET", "dev-access-secret")
    refresh_token_secret: str = os.getenv("REFRESH_TOKEN_SECRET", "dev-refresh-secret")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
    refresh_token_expire_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

    # Auth cookies are always httpOnly + sameSite=strict; secure can be relaxed for local http
    cookie_secure: bool = _env_bool("COOKIE_SECURE", "true")

    # S3-compatible object storage (media + avatars)
    s3_endpoint_url: str | None = os.getenv("S3_ENDPOINT_URL") or None
    s3_access_key: str | None = os.getenv("S3_ACCESS_KEY")
    s3_secret_key: str | None = os.getenv("S3_SECRET_KEY")
    s3_region: str | None = os.getenv("S3_REGION") or None
    s3_bucket: str = os.getenv("S3_BUCKET", "chirp")
    # Public (CDN) base URL that objects are served from
    media_public_base_url: str = os.getenv("MEDIA_PUBLIC_BASE_URL", "http://localhost:9000/chirp")
    media_folder: str = os.getenv("MEDIA_FOLDER", "chirp-media")

    # Local staging directory for multipart uploads before they go to storage
    upload_temp_dir: str = os.getenv("UPLOAD_TEMP_DIR", "./public/temp")

    @property
    def cors_origins(self) -> list[str]:
        if self.CORS_ORIGIN.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGIN.split(",") if o.strip()]


settings = Settings()  # Instantiate configuration
