from concept_linking.features.base import BaseFeatureGenerator
from concept_linking.registry import feature_generators
from concept_linking.types import Handle, RankingContext
from concept_linking.utils.text import content_tokens


@feature_generators.register("context_overlap")
class ContextOverlapFeature(BaseFeatureGenerator):
    """
    Share of the candidate's label and description words found around the mention.

    The context is the window of ``ctx.context_size`` characters on each side
    of the mention; the mention itself is excluded so that every candidate
    matching the mention does not get the same boost.
    """

    name = "context_overlap"
    priority = 50
    default_weight = 1.0

    def score(self, handle: Handle, ctx: RankingContext) -> float:
        window = ctx.surrounding_text()
        if not window:
            return 0.0
        mention_tokens = set(content_tokens(ctx.mention, ctx.stopwords))
        context_tokens = set(content_tokens(window, ctx.stopwords)) - mention_tokens
        candidate_tokens = set(content_tokens(handle.label, ctx.stopwords))
        candidate_tokens.update(content_tokens(handle.description, ctx.stopwords))
        candidate_tokens -= mention_tokens
        if not context_tokens or not candidate_tokens:
            return 0.0
        return len(candidate_tokens & context_tokens) / len(candidate_tokens)
