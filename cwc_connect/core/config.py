import sys

from pydantic_settings import BaseSettings

_ENV_FILE = None if "pytest" in sys.modules else ".env"


class Settings(BaseSettings):
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    HOST: str = "0.0.0.0"
    PORT: int = 5001
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    COSMOS_DB_CONNECTION_STRING: str = ""
    COSMOS_DB_ENDPOINT: str = ""
    COSMOS_DB_KEY: str = ""
    COSMOS_DB_DATABASE: str = "cwc-connect"
    COSMOS_DB_EMPLOYEES_CONTAINER: str = "employees"
    STORE_RECONNECT_INTERVAL_SECONDS: float = 30.0

    UPDATE_API: str = ""
    API_USERNAME: str = ""
    API_PASSWORD: str = ""
    API_TIMEOUT_SECONDS: float = 30.0
    API_RETRY_COUNT: int = 3
    API_RETRY_DELAY_SECONDS: float = 5.0

    DATA_DIR: str = "data"
    ROSTER_FILE: str = "eOffice.xlsx"
    DIRECTORY_FILE: str = "directory.xlsx"

    SYNC_INTERVAL_HOURS: float = 6.0
    SYNC_ON_STARTUP: bool = True

    OPENAI_ENDPOINT: str = ""
    OPENAI_API_KEY: str = ""
    OPENAI_API_VERSION: str = "2024-10-21"
    OPENAI_CHAT_MODEL: str = "gpt-4o"
    REPLY_TIMEOUT_SECONDS: float = 10.0

    model_config = {
        "env_file": _ENV_FILE,
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def roster_api_configured(self) -> bool:
        return bool(self.UPDATE_API and self.API_USERNAME and self.API_PASSWORD)

    @property
    def store_configured(self) -> bool:
        return bool(self.COSMOS_DB_CONNECTION_STRING or (self.COSMOS_DB_ENDPOINT and self.COSMOS_DB_KEY))


settings = Settings()
