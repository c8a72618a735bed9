from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    # n8n instance (비어 있으면 SessionStore에 저장된 값을 사용)
    N8N_INSTANCE_URL: str = ""
    N8N_API_KEY: str = ""
    N8N_API_PREFIX: str = "/api/v1"
    N8N_TIMEOUT_SECONDS: float = 30.0
    N8N_CONNECTION_TEST_TIMEOUT_SECONDS: float = 10.0

    # List screens
    N8N_PAGE_SIZE: int = 20
    N8N_DETAIL_EXECUTIONS_PAGE_SIZE: int = 10
    N8N_SEARCH_DEBOUNCE_SECONDS: float = 0.3

    # Credential cache (instance URL + API key only)
    N8N_SESSION_FILE: str = "~/.n8n_remote/session.json"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

settings = Settings()
