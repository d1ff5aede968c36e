"""Ranking feature generators. Importing this package registers the built-ins."""

from .base import BaseFeatureGenerator, FeatureGenerator, build_feature_generators
from .context import ContextOverlapFeature
from .lexical import (
    ExactMatchFeature,
    LevenshteinFeature,
    PrefixMatchFeature,
    TokenOverlapFeature,
)

__all__ = [
    "BaseFeatureGenerator",
    "FeatureGenerator",
    "build_feature_generators",
    "ContextOverlapFeature",
    "ExactMatchFeature",
    "LevenshteinFeature",
    "PrefixMatchFeature",
    "TokenOverlapFeature",
]
