from typing import List, Optional

from rapidfuzz import fuzz

from concept_linking.features.base import BaseFeatureGenerator
from concept_linking.registry import feature_generators
from concept_linking.types import Handle, RankingContext
from concept_linking.utils.text import content_tokens


def _surface_forms(ctx: RankingContext) -> List[str]:
    """Non-blank query and mention, lower-cased and trimmed."""
    forms = []
    for value in (ctx.query, ctx.mention):
        if value and value.strip():
            forms.append(value.strip().lower())
    return forms


def _label(handle: Handle) -> Optional[str]:
    return handle.label.strip().lower() if handle.label else None


@feature_generators.register("exact_match")
class ExactMatchFeature(BaseFeatureGenerator):
    """1.0 when the label equals the query or the mention."""

    name = "exact_match"
    priority = 10
    default_weight = 4.0

    def score(self, handle: Handle, ctx: RankingContext) -> float:
        label = _label(handle)
        return 1.0 if label is not None and label in _surface_forms(ctx) else 0.0


@feature_generators.register("prefix_match")
class PrefixMatchFeature(BaseFeatureGenerator):
    """1.0 when the label starts with the query."""

    name = "prefix_match"
    priority = 20
    default_weight = 1.0

    def score(self, handle: Handle, ctx: RankingContext) -> float:
        label = _label(handle)
        query = (ctx.query or "").strip().lower()
        if label is None or not query:
            return 0.0
        return 1.0 if label.startswith(query) else 0.0


@feature_generators.register("levenshtein")
class LevenshteinFeature(BaseFeatureGenerator):
    """Normalized edit similarity between label and query/mention, in [0, 1]."""

    name = "levenshtein"
    priority = 30
    default_weight = 2.0

    def score(self, handle: Handle, ctx: RankingContext) -> float:
        label = _label(handle)
        if label is None:
            return 0.0
        forms = _surface_forms(ctx)
        if not forms:
            return 0.0
        return max(fuzz.ratio(label, form) for form in forms) / 100.0


@feature_generators.register("token_overlap")
class TokenOverlapFeature(BaseFeatureGenerator):
    """Jaccard overlap of content tokens in the label and in query plus mention."""

    name = "token_overlap"
    priority = 40
    default_weight = 1.0

    def score(self, handle: Handle, ctx: RankingContext) -> float:
        label_tokens = set(content_tokens(handle.label, ctx.stopwords))
        query_tokens = set(content_tokens(ctx.query, ctx.stopwords))
        query_tokens.update(content_tokens(ctx.mention, ctx.stopwords))
        if not label_tokens or not query_tokens:
            return 0.0
        return len(label_tokens & query_tokens) / len(label_tokens | query_tokens)
