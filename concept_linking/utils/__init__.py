"""
Shared utilities for concept linking.
"""

from concept_linking.utils.iri import is_absolute_iri
from concept_linking.utils.stopwords import (
    load_default_stopwords,
    load_stopword_file,
    parse_stopwords,
)
from concept_linking.utils.text import content_tokens, get_tokenizer

__all__ = [
    "is_absolute_iri",
    "load_default_stopwords",
    "load_stopword_file",
    "parse_stopwords",
    "content_tokens",
    "get_tokenizer",
]
