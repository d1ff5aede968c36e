from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_FEATURE_GENERATORS = (
    "exact_match",
    "prefix_match",
    "levenshtein",
    "token_overlap",
    "context_overlap",
)


@dataclass
class ComponentConfig:
    """Generic component configuration."""

    name: str
    params: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_entry(entry: Any) -> "ComponentConfig":
        if isinstance(entry, str):
            return ComponentConfig(name=entry)
        if not isinstance(entry, dict) or "name" not in entry:
            raise ValueError(f"Component entry needs a 'name': {entry!r}")
        return ComponentConfig(name=entry["name"], params=entry.get("params", {}))


@dataclass
class CacheConfig:
    """Settings of the read-only knowledge base candidate cache."""

    enabled: bool = True
    max_entries: int = 1000
    ttl_seconds: Optional[float] = None


@dataclass
class LinkingConfig:
    """Top-level concept linking configuration."""

    ranker: ComponentConfig = field(default_factory=lambda: ComponentConfig(name="baseline"))
    feature_generators: List[ComponentConfig] = field(
        default_factory=lambda: [ComponentConfig(name=n) for n in DEFAULT_FEATURE_GENERATORS]
    )
    knowledge_bases: List[Dict[str, Any]] = field(default_factory=list)
    stopwords_path: Optional[str] = None
    candidate_display_limit: int = 100
    mention_context_size: int = 150
    local_threshold: int = 0
    remote_threshold: int = 3
    cache: CacheConfig = field(default_factory=CacheConfig)
    max_workers: int = 4
    timeout: Optional[float] = None
    cache_dir: Optional[str] = None

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "LinkingConfig":
        defaults = LinkingConfig()

        ranker = data.get("ranker")
        features = data.get("feature_generators")
        cache = data.get("cache") or {}

        config = LinkingConfig(
            ranker=ComponentConfig.from_entry(ranker) if ranker else defaults.ranker,
            feature_generators=(
                [ComponentConfig.from_entry(f) for f in features]
                if features is not None
                else defaults.feature_generators
            ),
            knowledge_bases=list(data.get("knowledge_bases", [])),
            stopwords_path=data.get("stopwords_path"),
            candidate_display_limit=data.get("candidate_display_limit", 100),
            mention_context_size=data.get("mention_context_size", 150),
            local_threshold=data.get("local_threshold", 0),
            remote_threshold=data.get("remote_threshold", 3),
            cache=CacheConfig(
                enabled=cache.get("enabled", True),
                max_entries=cache.get("max_entries", 1000),
                ttl_seconds=cache.get("ttl_seconds"),
            ),
            max_workers=data.get("max_workers", 4),
            timeout=data.get("timeout"),
            cache_dir=data.get("cache_dir"),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.candidate_display_limit < 1:
            raise ValueError("candidate_display_limit must be positive")
        if self.max_workers < 1:
            raise ValueError("max_workers must be positive")
        if self.local_threshold < 0 or self.remote_threshold < 0:
            raise ValueError("Query length thresholds must not be negative")
        if self.cache.max_entries < 1:
            raise ValueError("cache.max_entries must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
