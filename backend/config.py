"""Configuration management for the finance tracker backend."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM Configuration
    llm_provider: Literal["gemini", "openai", "ollama"] = "gemini"
    google_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    llm_temperature: float = 0.0
    llm_timeout: float = 120.0
    llm_max_tokens: int = 8192

    # Statement import
    min_text_length: int = 50  # Below this a PDF text layer counts as missing
    ocr_language: str = "eng"
    ocr_resolution: int = 200
    ocr_max_workers: int = 2
    duplicate_prefix_length: int = 20
    default_currency: str = "USD"
    max_upload_bytes: int = 10 * 1024 * 1024

    # Development mode
    dev_mode: bool = True
    log_level: str = "INFO"

    # Data directory
    data_dir: Path = Path.home() / ".finance-tracker"

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # LLM_PROVIDER and llm_provider both work
        extra="ignore",  # Ignore extra environment variables
    )

    @property
    def db_path(self) -> Path:
        """Get the SQLite database path."""
        suffix = "dev" if self.dev_mode else "prod"
        return self.data_dir / f"finance_{suffix}.db"

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def llm_model_name(self) -> str:
        """Get the litellm model string for the active provider."""
        if self.llm_provider == "openai":
            return self.openai_model
        if self.llm_provider == "ollama":
            return f"ollama/{self.ollama_model}"
        return f"gemini/{self.gemini_model}"

    def llm_api_key(self) -> str | None:
        """Get the API key for the active provider (Ollama needs none)."""
        if self.llm_provider == "openai":
            return self.openai_api_key or None
        if self.llm_provider == "gemini":
            return self.google_api_key or None
        return None

    def llm_api_base(self) -> str | None:
        """Get the API base URL for Ollama."""
        if self.llm_provider == "ollama":
            return self.ollama_host
        return None

    def log_config(self) -> None:
        """Log current configuration with sensitive values redacted."""

        def _redact(key: str) -> str:
            if not key:
                return "✗ Not set"
            return f"✓ Set ({key[:4]}...{key[-4:]})"

        print("\n" + "=" * 60)
        print("📋 CONFIGURATION LOADED")
        print("=" * 60)
        print(f"LLM Provider:        {self.llm_provider}")
        print(f"LLM Model:           {self.llm_model_name()}")
        print(f"Google API Key:      {_redact(self.google_api_key)}")
        print(f"OpenAI API Key:      {_redact(self.openai_api_key)}")
        print(f"Ollama Host:         {self.ollama_host}")
        print(f"OCR Language:        {self.ocr_language} @ {self.ocr_resolution} dpi")
        print(f"Duplicate Prefix:    {self.duplicate_prefix_length} chars")
        print(f"Default Currency:    {self.default_currency}")
        print(f"Max Upload:          {self.max_upload_bytes // (1024 * 1024)} MB")
        print(f"Dev Mode:            {self.dev_mode}")
        print(f"Data Directory:      {self.data_dir}")
        print(f"Database:            {self.db_path}")
        print(f"API Host:            {self.api_host}:{self.api_port}")
        print("=" * 60 + "\n")


# Global settings instance
settings = Settings()
