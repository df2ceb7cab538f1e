"""
Configuration for VaultRecall.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from vaultrecall.utils.exceptions import ConfigurationError


class EmbedderConfig(BaseModel):
    """Embedder configuration."""

    provider: str = "ollama"  # ollama, openai
    model: str = "nomic-embed-text"
    base_url: str = "http://localhost:11434"
    api_key: str | None = None
    timeout: float = 120.0
    # Optional: embedding dimension (fallback to auto-detect)
    dimension: int | None = None


class QdrantConfig(BaseModel):
    """Qdrant configuration."""

    url: str = "http://localhost:6333"
    collection_name: str = "vaultrecall-memory"
    use_grpc: bool = False
    hnsw_m: int = 16
    hnsw_ef_construct: int = 100
    use_quantization: bool = True
    on_disk: bool = False
    timeout: int = 30


class IndexingConfig(BaseModel):
    """Source tree and chunking configuration."""

    vault_path: str | None = None
    workspace_path: str = "."
    extra_paths: list[str] = Field(default_factory=list)
    # Lexical index and graph persistence (default: <workspace>/.vaultrecall)
    state_dir: str | None = None
    target_words: int = 400
    overlap_words: int = 80
    file_suffixes: list[str] = Field(default_factory=lambda: [".md"])

    def resolved_state_dir(self) -> Path:
        if self.state_dir:
            return Path(self.state_dir).expanduser()
        return Path(self.workspace_path).expanduser() / ".vaultrecall"


class SearchConfig(BaseModel):
    """Hybrid search defaults and fusion weights."""

    max_results: int = 5
    min_score: float = 0.5
    vector_weight: float = 0.7
    lexical_weight: float = 0.3
    lexical_min_candidates: int = 10
    lexical_overfetch: int = 4
    related_limit: int = 3
    snippet_chars: int = 700


class RecencyConfig(BaseModel):
    """Recency decay for captured memories (half-life = 30 days)."""

    enabled: bool = True
    half_life_days: float = Field(default=30.0, gt=0)
    weight: float = 0.2


class RecallConfig(BaseModel):
    """Auto-recall (context injection before a prompt is answered)."""

    enabled: bool = True
    limit: int = 3
    min_score: float = 0.4
    timeout: float = 3.0
    min_prompt_chars: int = 10


class CaptureConfig(BaseModel):
    """Auto-capture (disabled by default)."""

    enabled: bool = False
    max_per_message: int = 3
    duplicate_threshold: float = 0.92
    window_seconds: float = 300.0
    max_per_window: int = 3
    prune_interval_seconds: float = 300.0


class OrganizeConfig(BaseModel):
    """Orphan report filtering."""

    excluded_patterns: list[str] = Field(
        default_factory=lambda: ["01 Journal/", "memory/", "captured/"]
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    recency: RecencyConfig = Field(default_factory=RecencyConfig)
    recall: RecallConfig = Field(default_factory=RecallConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    organize: OrganizeConfig = Field(default_factory=OrganizeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def validate_paths(self) -> Path:
        """
        Check the required vault path.

        Returns:
            Resolved vault path

        Raises:
            ConfigurationError: If vault_path is unset or not a directory
        """
        if not self.indexing.vault_path:
            raise ConfigurationError("vault_path is required")
        vault = Path(self.indexing.vault_path).expanduser().resolve()
        if not vault.is_dir():
            raise ConfigurationError(
                f"vault_path missing or inaccessible: {vault}",
                context={"vault_path": str(vault)},
            )
        return vault

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            VAULTRECALL_EMBEDDER_PROVIDER: Embedder provider (ollama, openai)
            VAULTRECALL_EMBEDDER_MODEL: Embedder model name
            VAULTRECALL_EMBEDDER_BASE_URL: Embedder base URL
            VAULTRECALL_EMBEDDER_API_KEY: Embedder API key (for OpenAI)
            VAULTRECALL_EMBEDDER_DIMENSION: Embedding dimension (optional)
            VAULTRECALL_QDRANT_URL: Qdrant URL
            VAULTRECALL_QDRANT_COLLECTION: Qdrant collection name
            VAULTRECALL_VAULT_PATH: Obsidian vault root
            VAULTRECALL_WORKSPACE_PATH: Workspace root (MEMORY.md, memory/)
            VAULTRECALL_EXTRA_PATHS: Comma-separated extra files/directories
            VAULTRECALL_STATE_DIR: Lexical index and graph directory
            VAULTRECALL_AUTO_CAPTURE: Enable auto-capture
            VAULTRECALL_AUTO_RECALL: Enable auto-recall
        """
        # Load .env file if provided or exists
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            # If value is empty string, return default
            if value == "":
                return default
            # Convert boolean strings
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            # Convert numeric strings
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        extra_paths = get_env("VAULTRECALL_EXTRA_PATHS", "")
        dimension = get_env("VAULTRECALL_EMBEDDER_DIMENSION")

        return cls(
            embedder=EmbedderConfig(
                provider=get_env("VAULTRECALL_EMBEDDER_PROVIDER", "ollama"),
                model=get_env("VAULTRECALL_EMBEDDER_MODEL", "nomic-embed-text"),
                base_url=get_env("VAULTRECALL_EMBEDDER_BASE_URL", "http://localhost:11434"),
                api_key=get_env("VAULTRECALL_EMBEDDER_API_KEY"),
                timeout=get_env("VAULTRECALL_EMBEDDER_TIMEOUT", 120.0),
                dimension=int(dimension) if dimension else None,
            ),
            qdrant=QdrantConfig(
                url=get_env("VAULTRECALL_QDRANT_URL", "http://localhost:6333"),
                collection_name=get_env("VAULTRECALL_QDRANT_COLLECTION", "vaultrecall-memory"),
                use_grpc=get_env("VAULTRECALL_QDRANT_USE_GRPC", False),
                hnsw_m=get_env("VAULTRECALL_QDRANT_HNSW_M", 16),
                hnsw_ef_construct=get_env("VAULTRECALL_QDRANT_HNSW_EF_CONSTRUCT", 100),
                use_quantization=get_env("VAULTRECALL_QDRANT_USE_QUANTIZATION", True),
                on_disk=get_env("VAULTRECALL_QDRANT_ON_DISK", False),
            ),
            indexing=IndexingConfig(
                vault_path=get_env("VAULTRECALL_VAULT_PATH"),
                workspace_path=get_env("VAULTRECALL_WORKSPACE_PATH", "."),
                extra_paths=[p.strip() for p in extra_paths.split(",") if p.strip()],
                state_dir=get_env("VAULTRECALL_STATE_DIR"),
            ),
            recall=RecallConfig(
                enabled=get_env("VAULTRECALL_AUTO_RECALL", True),
                limit=get_env("VAULTRECALL_AUTO_RECALL_LIMIT", 3),
                min_score=get_env("VAULTRECALL_AUTO_RECALL_MIN_SCORE", 0.4),
            ),
            recency=RecencyConfig(
                enabled=get_env("VAULTRECALL_RECENCY_ENABLED", True),
                half_life_days=get_env("VAULTRECALL_RECENCY_HALF_LIFE_DAYS", 30.0),
                weight=get_env("VAULTRECALL_RECENCY_WEIGHT", 0.2),
            ),
            capture=CaptureConfig(
                enabled=get_env("VAULTRECALL_AUTO_CAPTURE", False),
                duplicate_threshold=get_env("VAULTRECALL_CAPTURE_DUP_THRESHOLD", 0.92),
                window_seconds=get_env("VAULTRECALL_CAPTURE_WINDOW_SECONDS", 300.0),
                max_per_window=get_env("VAULTRECALL_CAPTURE_MAX_PER_WINDOW", 3),
            ),
            logging=LoggingConfig(
                level=get_env("VAULTRECALL_LOG_LEVEL", "INFO"),
                log_to_file=get_env("VAULTRECALL_LOG_TO_FILE", False),
                log_dir=get_env("VAULTRECALL_LOG_DIR", "logs"),
                file_rotation=get_env("VAULTRECALL_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("VAULTRECALL_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("VAULTRECALL_LOG_COMPRESSION", "zip"),
                serialize=get_env("VAULTRECALL_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        # Start with YAML if provided
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file=env_file)

        # Merge: env vars override YAML (only sections that differ from defaults)
        final_dict = {**config_dict}
        default = cls()
        for section in (
            "embedder",
            "qdrant",
            "indexing",
            "recall",
            "recency",
            "capture",
            "logging",
        ):
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        return cls(**final_dict) if final_dict else env_config
