"""
Component registry for concept linking.

Provides pluggable registration for knowledge base loaders, ranking
strategies and ranking feature generators. Registration happens at import
time; lookups afterwards only read.
"""

from typing import Any, Callable, Dict, TypeVar

T = TypeVar("T")


class ComponentRegistry:
    """Simple registry to keep components pluggable."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._registry: Dict[str, Callable[..., Any]] = {}

    def register(self, name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
        def decorator(factory: Callable[..., T]) -> Callable[..., T]:
            if name in self._registry:
                raise ValueError(f"{self.kind} '{name}' already registered.")
            self._registry[name] = factory
            return factory

        return decorator

    def get(self, name: str) -> Callable[..., Any]:
        try:
            return self._registry[name]
        except KeyError as exc:
            raise KeyError(f"{self.kind} '{name}' not found.") from exc

    def available(self) -> Dict[str, Callable[..., Any]]:
        return dict(self._registry)

    def __contains__(self, name: object) -> bool:
        return name in self._registry


# Registries for all linking components
graph_loaders = ComponentRegistry("Graph loader")
rankers = ComponentRegistry("Ranker")
feature_generators = ComponentRegistry("Feature generator")
