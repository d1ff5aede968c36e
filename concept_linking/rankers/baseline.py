"""
Feature-weighted baseline ranker.

Every candidate is scored by each feature generator; the scores form a
matrix (candidates x features) whose weighted row sums are the ranking keys.
"""

import logging
from typing import AbstractSet, Iterable, List, Optional, Sequence

import numpy as np

from concept_linking.features.base import FeatureGenerator
from concept_linking.rankers.base import label_sort_key
from concept_linking.registry import rankers
from concept_linking.types import DocumentContext, Handle, RankingContext

logger = logging.getLogger(__name__)


@rankers.register("baseline")
class BaselineRanker:
    def __init__(
        self,
        feature_generators: Sequence[FeatureGenerator] = (),
        stopwords: AbstractSet[str] = frozenset(),
        candidate_display_limit: int = 100,
        mention_context_size: int = 150,
        **_: object,
    ):
        self.feature_generators = tuple(feature_generators)
        self.stopwords = frozenset(stopwords)
        self.candidate_display_limit = candidate_display_limit
        self.mention_context_size = mention_context_size
        self.weights = np.array([g.weight for g in self.feature_generators], dtype=float)

    def score_matrix(self, candidates: Sequence[Handle], ctx: RankingContext) -> np.ndarray:
        matrix = np.zeros((len(candidates), len(self.feature_generators)), dtype=float)
        for i, handle in enumerate(candidates):
            for j, generator in enumerate(self.feature_generators):
                matrix[i, j] = generator.score(handle, ctx)
        return matrix

    def rank(
        self,
        query: Optional[str],
        mention: Optional[str],
        candidates: Iterable[Handle],
        document_context: Optional[DocumentContext],
        mention_offset: int,
    ) -> List[Handle]:
        # Pre-sort so equal scores fall back to the label order
        ordered = sorted(candidates, key=label_sort_key)
        if not ordered:
            return []

        ctx = RankingContext(
            query=query,
            mention=mention,
            mention_offset=mention_offset,
            document=document_context,
            stopwords=self.stopwords,
            context_size=self.mention_context_size,
        )
        if self.feature_generators:
            scores = self.score_matrix(ordered, ctx) @ self.weights
        else:
            scores = np.zeros(len(ordered))

        # Stable sort on the negated score keeps the label order among ties
        order = np.argsort(-scores, kind="stable")
        ranked = [ordered[i] for i in order]

        logger.debug(
            f"Baseline ranking for query [{query}] mention [{mention}]: "
            + ", ".join(f"{ordered[i].iri}={scores[i]:.3f}" for i in order[:5])
        )
        return ranked[: self.candidate_display_limit]
