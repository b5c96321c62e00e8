"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Server (python -m caption_relay)
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Session defaults (overridden by the activate request)
    SOURCE_LANG: str = "en"
    TARGET_LANG: str = "th"

    # Capture loop cadence (seconds). Fixed intervals, not adaptive.
    SCAN_POLL_INTERVAL_SEC: float = 0.3
    DISCOVERY_PROBE_INTERVAL_SEC: float = 2.0
    MUTATION_EVAL_INTERVAL_SEC: float = 3.0
    TEXT_SCAN_INTERVAL_SEC: float = 0.8

    # Source discovery
    CANDIDATE_TIMEOUT_SEC: float = 10.0  # pending descriptor match abandoned after this
    MIN_MUTATION_HITS: int = 5
    MUTATION_BURST_LIMIT: int = 500  # ignore mutation batches larger than this (page re-render)
    MUTATION_WALK_LEVELS: int = 8
    MUTATION_WALK_MAX_HEIGHT: float = 400.0
    BLOCK_EXPAND_LEVELS: int = 6
    BLOCK_EXPAND_MAX_HEIGHT: float = 500.0
    TEXT_SCAN_MIN_CHANGES: int = 2
    TEXT_SCAN_VIEWPORT_FRACTION: float = 0.45  # only the lower part of the viewport is scanned
    TEXT_SCAN_PRUNE_SIZE: int = 200

    # Diff & commit. Empirically tuned; affects responsiveness, not correctness.
    SIMILARITY_THRESHOLD: float = 0.6
    SIMILARITY_MIN_TOKENS: int = 3
    PREFIX_MIN_CHARS: int = 10
    REVISION_HEAD_CHARS: int = 10

    # Flush to translation sink
    FLUSH_FIRST_DEBOUNCE_SEC: float = 0.15  # first flush after activate/clear
    FLUSH_DEBOUNCE_SEC: float = 0.5
    SINK_WINDOW_BLOCKS: int = 10
    CHECKPOINT_EVERY_COMMITS: int = 10

    # Persistence: session.json with metadata + bounded transcript tail
    STATE_SAVE_ENABLED: bool = True
    STATE_DIR: str = "./state"
    PERSIST_TAIL_BLOCKS: int = 200

    # Spelling / grammar correction of the latest committed block
    SPELLING_CORRECTION_ENABLED: bool = True
    CORRECTION_MIN_CHARS: int = 8
    CORRECTION_MAX_GROWTH: float = 2.0  # reject results longer than this x original

    # Assist queries
    ASSIST_COMMAND_DEBOUNCE_SEC: float = 0.5
    ASSIST_CONTEXT_BLOCKS: int = 15
    ASSIST_DOC_MAX_CHARS: int = 6000  # per reference document
    ASSIST_DOCS_MAX_CHARS: int = 18000  # all reference documents together

    # AI provider: "openai" | "anthropic" | "cloudflare"
    AI_PROVIDER: Literal["openai", "anthropic", "cloudflare"] = "openai"
    AI_MAX_TOKENS: int = 1024
    AI_TEMPERATURE: float = 0.4
    AI_TIMEOUT_SEC: float = 60.0

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"

    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com/v1"
    ANTHROPIC_VERSION: str = "2023-06-01"

    # Cloudflare Workers AI (text generation)
    CLOUDFLARE_ACCOUNT_ID: str = ""
    CLOUDFLARE_API_TOKEN: str = ""
    CLOUDFLARE_MODEL: str = "@cf/meta/llama-3.1-8b-instruct"

    # Reference documents: optional JSON list [{id, name, content}] loaded at startup
    DOCUMENTS_PATH: str = ""

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path = also log to file (empty = console only).
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
