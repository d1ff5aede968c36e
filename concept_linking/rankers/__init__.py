"""Ranking strategies. Importing this package registers the built-ins."""

from .base import Ranker, label_sort_key
from .baseline import BaselineRanker
from .cross_encoder import CrossEncoderRanker
from .external import ExternalRanker
from .label import LabelRanker

__all__ = [
    "Ranker",
    "label_sort_key",
    "BaselineRanker",
    "CrossEncoderRanker",
    "ExternalRanker",
    "LabelRanker",
]
