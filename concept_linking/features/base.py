import logging
from typing import List, Optional, Protocol, Sequence

from concept_linking.config import ComponentConfig
from concept_linking.registry import feature_generators
from concept_linking.types import Handle, RankingContext

logger = logging.getLogger(__name__)


class FeatureGenerator(Protocol):
    """Produces one relevance signal for a candidate."""

    name: str
    priority: int
    weight: float

    def score(self, handle: Handle, ctx: RankingContext) -> float:
        ...


class BaseFeatureGenerator:
    """Common attributes of the built-in feature generators.

    Generators are evaluated in ascending ``priority``; ``weight`` scales the
    score in the baseline ranker's weighted sum.
    """

    name = "base"
    priority = 100
    default_weight = 1.0

    def __init__(self, weight: Optional[float] = None, priority: Optional[int] = None):
        self.weight = self.default_weight if weight is None else float(weight)
        if priority is not None:
            self.priority = priority

    def __repr__(self) -> str:
        return f"{type(self).__name__}(weight={self.weight}, priority={self.priority})"


def build_feature_generators(configs: Sequence[ComponentConfig]) -> List[FeatureGenerator]:
    """Instantiate the configured generators once, ordered by priority then name."""
    generators = [feature_generators.get(c.name)(**c.params) for c in configs]
    generators.sort(key=lambda g: (g.priority, g.name))
    for generator in generators:
        logger.info(f"Found entity ranking feature generator: {generator!r}")
    return generators
