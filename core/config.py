# Файл конфігурації, завантажує змінні з .env
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    model_config = ConfigDict(extra="ignore", env_file=".env")

    # 1. Firebase
    FIREBASE_SERVICE_ACCOUNT_KEY_PATH: str | None = None

    # 2. Сховище: "firestore" або "memory" (локальна розробка / тести)
    STORAGE_BACKEND: str = "firestore"

    # 3. CORS
    FRONTEND_ORIGIN: str = ""

    # 4. Податкові таблиці (JSON). Якщо не задано, беремо вбудовані NTA 2025
    TAX_RULES_PATH: str | None = None
    DEFAULT_CURRENCY: str = "NGN"
    MIN_TAX_YEAR: int = 2020

    # 5. Логування
    LOG_LEVEL: str = "INFO"


settings = Settings()
