"""Unit tests for ranking feature generators."""

import pytest

from concept_linking.config import ComponentConfig
from concept_linking.context import TextDocumentContext
from concept_linking.features import (
    ContextOverlapFeature,
    ExactMatchFeature,
    LevenshteinFeature,
    PrefixMatchFeature,
    TokenOverlapFeature,
    build_feature_generators,
)
from concept_linking.types import Handle, RankingContext

PARIS = Handle(iri="http://example.org/paris", label="Paris", description="Capital of France")
PARIS_TX = Handle(
    iri="http://example.org/paris_tx", label="Paris, Texas", description="City in Lamar County, Texas"
)
NO_LABEL = Handle(iri="http://example.org/anonymous")


class TestExactMatchFeature:
    def test_matches_query_case_insensitive(self):
        assert ExactMatchFeature().score(PARIS, RankingContext(query="paris")) == 1.0

    def test_matches_mention(self):
        ctx = RankingContext(query="Par", mention="Paris")
        assert ExactMatchFeature().score(PARIS, ctx) == 1.0

    def test_partial_label_does_not_match(self):
        assert ExactMatchFeature().score(PARIS_TX, RankingContext(query="Paris")) == 0.0

    def test_missing_label(self):
        assert ExactMatchFeature().score(NO_LABEL, RankingContext(query="Paris")) == 0.0


class TestPrefixMatchFeature:
    def test_prefix(self):
        assert PrefixMatchFeature().score(PARIS_TX, RankingContext(query="Par")) == 1.0

    def test_not_prefix(self):
        assert PrefixMatchFeature().score(PARIS_TX, RankingContext(query="Texas")) == 0.0

    def test_empty_query(self):
        assert PrefixMatchFeature().score(PARIS, RankingContext(query="")) == 0.0


class TestLevenshteinFeature:
    def test_identical(self):
        assert LevenshteinFeature().score(PARIS, RankingContext(query="Paris")) == pytest.approx(1.0)

    def test_closer_label_scores_higher(self):
        ctx = RankingContext(query="Paris")
        feature = LevenshteinFeature()
        assert feature.score(PARIS, ctx) > feature.score(PARIS_TX, ctx) > 0.0

    def test_best_of_query_and_mention(self):
        ctx = RankingContext(query="xyz", mention="Paris")
        assert LevenshteinFeature().score(PARIS, ctx) == pytest.approx(1.0)

    def test_no_input(self):
        assert LevenshteinFeature().score(PARIS, RankingContext(query=None)) == 0.0


class TestTokenOverlapFeature:
    def test_jaccard(self, stopwords):
        ctx = RankingContext(query="Paris", stopwords=stopwords)
        assert TokenOverlapFeature().score(PARIS, ctx) == pytest.approx(1.0)
        assert TokenOverlapFeature().score(PARIS_TX, ctx) == pytest.approx(0.5)

    def test_stopwords_are_ignored(self, stopwords):
        handle = Handle(iri="http://example.org/x", label="The City of Paris")
        ctx = RankingContext(query="city paris", stopwords=stopwords)
        assert TokenOverlapFeature().score(handle, ctx) == pytest.approx(1.0)


class TestContextOverlapFeature:
    def test_no_document(self):
        ctx = RankingContext(query="Paris", mention="Paris")
        assert ContextOverlapFeature().score(PARIS, ctx) == 0.0

    def test_context_favours_matching_description(self, stopwords):
        text = "Last summer we drove through Lamar County in Texas and stopped in Paris for lunch."
        offset = text.index("Paris")
        ctx = RankingContext(
            query="Paris",
            mention="Paris",
            mention_offset=offset,
            document=TextDocumentContext(text),
            stopwords=stopwords,
            context_size=150,
        )
        feature = ContextOverlapFeature()
        assert feature.score(PARIS_TX, ctx) > feature.score(PARIS, ctx)


class TestBuildFeatureGenerators:
    def test_sorted_by_priority(self):
        generators = build_feature_generators(
            [ComponentConfig(name="context_overlap"), ComponentConfig(name="exact_match")]
        )
        assert [g.name for g in generators] == ["exact_match", "context_overlap"]

    def test_params_override_weight_and_priority(self):
        generators = build_feature_generators(
            [
                ComponentConfig(name="exact_match", params={"weight": 0.5, "priority": 99}),
                ComponentConfig(name="levenshtein"),
            ]
        )
        assert [g.name for g in generators] == ["levenshtein", "exact_match"]
        assert generators[1].weight == 0.5

    def test_unknown_generator(self):
        with pytest.raises(KeyError, match="not found"):
            build_feature_generators([ComponentConfig(name="popularity")])
