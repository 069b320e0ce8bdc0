"""Configuration loaded from environment (.env) and defaults."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the project root .env file regardless of CWD
_THIS_DIR = Path(__file__).resolve().parent          # ideagen/
_PROJECT_ROOT = _THIS_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM provider: anthropic | openai
    ideagen_llm_provider: str = "anthropic"

    # Anthropic
    anthropic_api_key: str | None = None
    ideagen_anthropic_model: str = "claude-sonnet-4-20250514"

    # OpenAI
    openai_api_key: str | None = None
    ideagen_openai_model: str = "gpt-4o"

    # Data directory for the file-based stores
    ideagen_data_dir: str = "./data"

    # Postgres URL; when set, sessions, ideas and usage live in Postgres
    ideagen_database_url: str | None = None

    # Terminal sessions older than this are removed by the sweep
    session_retention_days: int = 3

    # Token pricing in USD per million tokens
    input_cost_per_million: float = 3.0
    output_cost_per_million: float = 15.0

    # Default low-balance alert threshold (USD)
    low_balance_threshold_usd: float = 10.0

    # CORS origins (comma-separated). Defaults to localhost dev.
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"
    cors_origin_regex: str | None = None

    # Login credentials, comma-separated "username:password" pairs
    auth_users: str = "admin:changeme"

    # Max mutating requests per client IP per minute
    rate_limit_max: int = 30

    # Server port
    port: int = 8000

    @property
    def data_dir(self) -> Path:
        """Get data directory as Path.

        Relative paths are resolved against the project root (not CWD).
        """
        p = Path(self.ideagen_data_dir)
        if not p.is_absolute():
            return (_PROJECT_ROOT / p).resolve()
        return p.resolve()

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def auth_user_map(self) -> dict[str, str]:
        """Parse ``auth_users`` into {username: password}."""
        users: dict[str, str] = {}
        for pair in self.auth_users.split(","):
            name, sep, password = pair.strip().partition(":")
            if sep and name:
                users[name.lower()] = password
        return users

    def ensure_dirs(self) -> None:
        """Ensure the data directory exists."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_dirs()
    return settings
