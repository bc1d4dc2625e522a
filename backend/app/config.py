# /backend/app/config.py

from pydantic import BaseModel
from typing import Optional
import os

class Settings(BaseModel):
    # App Settings
    APP_NAME: str = "Health Records Ingestion Service"
    VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Database
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "health_records"

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    ALLOW_DEMO_USER: bool = False
    DEMO_USER_ID: str = "00000000-0000-0000-0000-000000000000"

    # Object store
    UPLOAD_DIR: str = "uploads"
    STORAGE_BUCKET: str = "health_documents"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    UPLOAD_MAX_RETRIES: int = 2
    UPLOAD_RETRY_DELAY: float = 1.0  # seconds

    # File Upload
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_EXTENSIONS: list = [".pdf", ".jpg", ".jpeg", ".png", ".txt"]

    # Language model
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    LLM_TIMEOUT: float = 60.0

    # CORS
    CORS_ORIGINS: list = ["http://localhost:5173"]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Load from environment variables
        self.MONGODB_URL = os.getenv("MONGODB_URL", self.MONGODB_URL)
        self.DATABASE_NAME = os.getenv("DATABASE_NAME", self.DATABASE_NAME)
        self.SECRET_KEY = os.getenv("SECRET_KEY", self.SECRET_KEY)
        self.DEBUG = os.getenv("DEBUG", str(self.DEBUG)).lower() == "true"
        self.ALLOW_DEMO_USER = os.getenv("ALLOW_DEMO_USER", str(self.ALLOW_DEMO_USER)).lower() == "true"
        self.UPLOAD_DIR = os.getenv("UPLOAD_DIR", self.UPLOAD_DIR)
        self.PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", self.PUBLIC_BASE_URL).rstrip("/")
        self.UPLOAD_RETRY_DELAY = float(os.getenv("UPLOAD_RETRY_DELAY", self.UPLOAD_RETRY_DELAY))
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", self.OPENAI_API_KEY)
        self.OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", self.OPENAI_BASE_URL).rstrip("/")
        self.OPENAI_MODEL = os.getenv("OPENAI_MODEL", self.OPENAI_MODEL)

settings = Settings()
