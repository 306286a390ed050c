"""Configuration for the local RAG assistant."""

import logging
import os
from dataclasses import dataclass, field
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from rag.vectorstore.retriever import ScoringWeights

DEFAULT_PRIORITY_TERMS = (
    "invoice",
    "fee",
    "amount",
    "total",
    "price",
    "cost",
    "payment",
    "tax",
)


@dataclass(frozen=True)
class Config:
    """Immutable settings resolved once at start-up."""

    # Upstream LLM endpoints (Ollama-compatible)
    llm_chat_url: str = "http://localhost:11434/api/chat"
    llm_embedding_url: str = "http://localhost:11434/api/embed"
    chat_model: str = "llama3.2"
    embedding_model: str = "nomic-embed-text"

    # Chunking and retrieval
    chunk_size: int = 1000
    chunk_overlap: int = 200
    top_k: int = 5
    history_window: int = 5
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    priority_terms: tuple[str, ...] = DEFAULT_PRIORITY_TERMS

    # Outbound call policy
    max_retries: int = 3
    backoff_base: float = 2.0
    http_timeout: float = 100.0

    # Storage
    data_directory: Path = field(default_factory=lambda: Path("data"))
    upload_directory: Path = field(default_factory=lambda: Path("uploads"))

    # Logging
    log_directory: Path = field(default_factory=lambda: Path("logs"))
    log_level: str = "INFO"

    # Request limits
    max_upload_bytes: int = 50 * 1024 * 1024
    allowed_extensions: tuple[str, ...] = (".pdf", ".docx", ".txt", ".md")

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
        if self.top_k <= 0:
            raise ValueError("top_k must be positive")

    @property
    def documents_path(self) -> Path:
        return self.data_directory / "documents.json"

    @property
    def conversations_path(self) -> Path:
        return self.data_directory / "conversations.json"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Config":
        """
        Build a configuration from environment variables.

        A .env file is loaded first; variables already set in the process
        environment take precedence. Unparsable numeric values fall back
        to the defaults.
        """
        load_dotenv(env_file)
        defaults = cls()

        priority_terms = defaults.priority_terms
        raw_terms = os.getenv("PRIORITY_TERMS")
        if raw_terms:
            priority_terms = tuple(t.strip() for t in raw_terms.split(",") if t.strip())

        return cls(
            llm_chat_url=os.getenv("LLM_CHAT_URL", defaults.llm_chat_url),
            llm_embedding_url=os.getenv("LLM_EMBEDDING_URL", defaults.llm_embedding_url),
            chat_model=os.getenv("CHAT_MODEL", defaults.chat_model),
            embedding_model=os.getenv("EMBEDDING_MODEL", defaults.embedding_model),
            chunk_size=_env_int("CHUNK_SIZE", defaults.chunk_size),
            chunk_overlap=_env_int("CHUNK_OVERLAP", defaults.chunk_overlap),
            top_k=_env_int("TOP_K", defaults.top_k),
            history_window=_env_int("HISTORY_WINDOW", defaults.history_window),
            priority_terms=priority_terms,
            max_retries=_env_int("MAX_RETRIES", defaults.max_retries),
            backoff_base=_env_float("BACKOFF_BASE", defaults.backoff_base),
            http_timeout=_env_float("HTTP_TIMEOUT", defaults.http_timeout),
            data_directory=Path(os.getenv("DATA_DIRECTORY", str(defaults.data_directory))),
            upload_directory=Path(os.getenv("UPLOAD_DIRECTORY", str(defaults.upload_directory))),
            log_directory=Path(os.getenv("LOG_DIRECTORY", str(defaults.log_directory))),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ[name])
    except (KeyError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ[name])
    except (KeyError, ValueError):
        return default


_logging_configured = False


def configure_logging(config: "Config") -> None:
    """Attach console and daily-rotating file handlers to the root logger."""
    global _logging_configured
    if _logging_configured:
        return

    root = logging.getLogger()

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    config.log_directory.mkdir(parents=True, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        config.log_directory / "localrag.log",
        when="midnight",
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    root.setLevel(config.log_level)
    _logging_configured = True


# Global default configuration
_default_config: Optional[Config] = None


def get_config() -> Config:
    """Get the default configuration."""
    global _default_config
    if _default_config is None:
        _default_config = Config.from_env()
    return _default_config


def set_config(config: Config) -> None:
    """Set the default configuration."""
    global _default_config
    _default_config = config
