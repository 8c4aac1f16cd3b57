from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    vault_dir: Path = Path.home() / ".gated_notes" / "vault"
    deck_filename: str = "_flashcards.json"
    bury_delay_hours: float = 24
    notice_history: int = 50
    session_idle_minutes: float = 30
    max_review_sessions: int = 32
    log_level: str = "INFO"

    model_config = {"env_prefix": "GATED_NOTES_"}


settings = Settings()
