from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///./flashbot.db"

    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_API_URL: str = "https://api.telegram.org"
    # Пустая строка = заголовок вебхука не проверяется
    WEBHOOK_SECRET: str = ""

    STUDY_ADVANCE_DELAY_SECONDS: float = 1.5
    DUE_CARDS_LIMIT: int = 20

    LOG_LEVEL: str = "INFO"

settings = Settings()
