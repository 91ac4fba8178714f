from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    codex_home: str = ""
    codex_base_url: str = "https://chatgpt.com/backend-api/codex"
    ping_model: str = "gpt-5"
    ping_timeout: float = 30.0
    user_agent: str = "codex-ping/0.1.0"
    poll_interval_seconds: int = 60
    primary_auto_ping: bool = True
    secondary_auto_ping: bool = True
    log_format: str = "text"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
