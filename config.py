import os
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Request
from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime configuration, built once at startup and injected into the app."""

    app_name: str = "Training Academy API"
    database_url: str = "sqlite:///./academy.db"
    cors_origins: List[str] = ["*"]

    # JWT Configuration
    secret_key: str = "change-this-secret-key"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Only emails on this domain may sign in (None disables the check)
    domain_restriction: Optional[str] = None

    # Quiz rules
    pass_threshold: int = 90
    session_ttl_minutes: int = 10
    enforce_watched: bool = True

    # AI providers
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    quiz_language: str = "Portuguese (Portugal)"

    transcript_language: str = "pt"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        defaults = cls()

        def flag(name: str, default: bool) -> bool:
            value = os.getenv(name)
            if value is None:
                return default
            return value.strip().lower() in ("1", "true", "yes", "on")

        origins = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            cors_origins=[o.strip() for o in origins.split(",")] if origins else defaults.cors_origins,
            secret_key=os.getenv("SECRET_KEY", defaults.secret_key),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", defaults.access_token_expire_minutes)),
            domain_restriction=os.getenv("DOMAIN_RESTRICTION") or None,
            pass_threshold=int(os.getenv("PASS_THRESHOLD", defaults.pass_threshold)),
            session_ttl_minutes=int(os.getenv("QUIZ_SESSION_TTL_MINUTES", defaults.session_ttl_minutes)),
            enforce_watched=flag("ENFORCE_WATCHED", defaults.enforce_watched),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", defaults.openai_model),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", defaults.gemini_model),
            quiz_language=os.getenv("QUIZ_LANGUAGE", defaults.quiz_language),
            transcript_language=os.getenv("TRANSCRIPT_LANGUAGE", defaults.transcript_language),
        )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
