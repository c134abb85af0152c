"""Configuration management. All settings from environment variables with sensible defaults."""

from __future__ import annotations

import logging
import os
import string
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_BOOL_TRUTHY = {"true", "1", "yes"}

# Placeholders a backfill template may reference. Each maps to a Book field.
TEMPLATE_FIELDS: frozenset[str] = frozenset({"id", "title", "author", "pages"})

DEFAULT_TEMPLATE = "{title} by {author}. {pages} pages."


@dataclass(frozen=True)
class DatabaseConfig:
    host: str = "localhost"
    port: int = 5432
    name: str = "shelf"
    user: str = "postgres"
    password: str = "password"
    pool_min: int = 1
    pool_max: int = 10

    @property
    def dsn(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


@dataclass(frozen=True)
class EmbeddingConfig:
    backend: str = "huggingface"  # "huggingface", "openai", "bedrock", "local", or registered provider name
    model: str = "sentence-transformers/all-MiniLM-L6-v2"
    dimensions: int = 384
    timeout: float = 60.0  # seconds per remote call

    # HuggingFace Inference API settings
    huggingface_base_url: str = "https://api-inference.huggingface.co"
    huggingface_token: str = ""  # empty = anonymous (rate limited)
    huggingface_max_wait: float = 30.0  # cap on a signalled cold-start wait

    # OpenAI-compatible settings (works with OpenAI, Ollama, vLLM, LM Studio, Together)
    openai_base_url: str = "https://api.openai.com"
    openai_model: str = "text-embedding-3-small"
    openai_api_key: str = ""  # empty = no Authorization header (for local endpoints)

    # Bedrock settings (Titan Text Embeddings V2)
    bedrock_model: str = "amazon.titan-embed-text-v2:0"
    bedrock_region: str = "us-east-1"

    @property
    def model_name(self) -> str:
        """Model identifier for the active backend."""
        if self.backend == "openai":
            return self.openai_model
        if self.backend == "bedrock":
            return self.bedrock_model
        return self.model


@dataclass(frozen=True)
class SearchConfig:
    default_limit: int = 5
    backfill_template: str = DEFAULT_TEMPLATE
    backfill_workers: int = 1         # 1 = sequential, one request at a time
    retry_attempts: int = 1           # total tries per backfill embedding call (1 = no retry)
    retry_backoff: float = 0.0        # seconds, doubled after each failed try
    invalidate_on_edit: bool = False  # clear stored vector when title/author/pages change
    embed_on_create: bool = False     # embed new books immediately instead of waiting for backfill


@dataclass(frozen=True)
class Config:
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    store: str = "postgres"  # "postgres" or "memory"
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


def _parse_cors_origins(raw: str) -> list[str]:
    """Parse comma-separated CORS origins. '*' means allow all."""
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in _BOOL_TRUTHY


def validate_template(template: str) -> str:
    """Reject templates that reference anything other than book fields.

    Raises ValueError so a bad template fails at startup, not mid-backfill.
    """
    names = set()
    for _, name, _, _ in string.Formatter().parse(template):
        if name is None:
            continue
        if not name:
            raise ValueError("Backfill template must use named placeholders, e.g. {title}")
        names.add(name.split(".")[0].split("[")[0])
    unknown = names - TEMPLATE_FIELDS
    if unknown:
        raise ValueError(
            f"Unknown backfill template field(s): {', '.join(sorted(unknown))}. "
            f"Available: {', '.join(sorted(TEMPLATE_FIELDS))}"
        )
    return template


def load_config() -> Config:
    """Load configuration from environment variables."""
    store = os.getenv("SHELF_STORE", "postgres").lower().strip()
    if store not in ("postgres", "memory"):
        raise ValueError(f"Unknown SHELF_STORE: {store!r} (valid: memory, postgres)")

    search = SearchConfig(
        default_limit=int(os.getenv("SHELF_SEARCH_DEFAULT_LIMIT", "5")),
        backfill_template=validate_template(os.getenv("SHELF_BACKFILL_TEMPLATE", DEFAULT_TEMPLATE)),
        backfill_workers=max(1, int(os.getenv("SHELF_BACKFILL_WORKERS", "1"))),
        retry_attempts=max(1, int(os.getenv("SHELF_BACKFILL_RETRY_ATTEMPTS", "1"))),
        retry_backoff=float(os.getenv("SHELF_BACKFILL_RETRY_BACKOFF", "0")),
        invalidate_on_edit=_env_bool("SHELF_INVALIDATE_ON_EDIT", "false"),
        embed_on_create=_env_bool("SHELF_EMBED_ON_CREATE", "false"),
    )
    if not search.invalidate_on_edit:
        logger.debug("Stored vectors are kept when book fields change (SHELF_INVALIDATE_ON_EDIT=false)")

    return Config(
        db=DatabaseConfig(
            host=os.getenv("SHELF_DB_HOST", "localhost"),
            port=int(os.getenv("SHELF_DB_PORT", "5432")),
            name=os.getenv("SHELF_DB_NAME", "shelf"),
            user=os.getenv("SHELF_DB_USER", "postgres"),
            password=os.getenv("SHELF_DB_PASS", "password"),
            pool_min=int(os.getenv("SHELF_DB_POOL_MIN", "1")),
            pool_max=int(os.getenv("SHELF_DB_POOL_MAX", "10")),
        ),
        embedding=EmbeddingConfig(
            backend=os.getenv("SHELF_EMBEDDING_BACKEND", "huggingface"),
            model=os.getenv("SHELF_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"),
            dimensions=int(os.getenv("SHELF_EMBEDDING_DIMENSIONS", "384")),
            timeout=float(os.getenv("SHELF_EMBEDDING_TIMEOUT", "60")),
            huggingface_base_url=os.getenv("SHELF_HF_BASE_URL", "https://api-inference.huggingface.co"),
            huggingface_token=os.getenv("SHELF_HF_TOKEN", os.getenv("HF_TOKEN", "")),
            huggingface_max_wait=float(os.getenv("SHELF_HF_MAX_WAIT", "30")),
            openai_base_url=os.getenv("SHELF_EMBEDDING_OPENAI_URL", "https://api.openai.com"),
            openai_model=os.getenv("SHELF_EMBEDDING_OPENAI_MODEL", "text-embedding-3-small"),
            openai_api_key=os.getenv("SHELF_EMBEDDING_OPENAI_KEY", os.getenv("OPENAI_API_KEY", "")),
            bedrock_model=os.getenv("SHELF_EMBEDDING_BEDROCK_MODEL", "amazon.titan-embed-text-v2:0"),
            bedrock_region=os.getenv("SHELF_EMBEDDING_BEDROCK_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")),
        ),
        search=search,
        store=store,
        http_host=os.getenv("SHELF_HTTP_HOST", "0.0.0.0"),
        http_port=int(os.getenv("SHELF_HTTP_PORT", "8080")),
        cors_origins=_parse_cors_origins(os.getenv("SHELF_CORS_ORIGINS", "*")),
        log_level=os.getenv("SHELF_LOG_LEVEL", "INFO").upper(),
    )
