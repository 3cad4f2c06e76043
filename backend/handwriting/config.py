# handwriting/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

class Settings(BaseModel):
    # General settings
    APP_NAME: str = "Handwriting Data Layer"
    env: str = os.getenv("ENV", "dev")

    # Remote persistence service (serverless data API)
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:3000")
    http_timeout_sec: float = float(os.getenv("HTTP_TIMEOUT_SEC", "30"))

    # Bulk reads younger than this are served from the replica without a network call
    freshness_window_sec: float = float(os.getenv("FRESHNESS_WINDOW_SEC", "30"))

    # Background push retry policy (1 = no retry, failures roll back immediately)
    push_max_attempts: int = int(os.getenv("PUSH_MAX_ATTEMPTS", "1"))
    push_retry_backoff_sec: float = float(os.getenv("PUSH_RETRY_BACKOFF_SEC", "0.5"))

    # Username reserved for the moderator account created by seeding scripts
    default_admin_username: str = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")

settings = Settings()  # Instantiate configuration
