"""
Tokenization helpers for ranking features.

Uses a blank spaCy English pipeline, which only needs the rule-based
tokenizer and no model download.
"""

import threading
from typing import AbstractSet, List, Optional

import spacy
from spacy.language import Language

_nlp: Optional[Language] = None
_nlp_lock = threading.Lock()


def get_tokenizer() -> Language:
    """Return the shared blank spaCy pipeline, creating it on first use."""
    global _nlp
    if _nlp is None:
        with _nlp_lock:
            if _nlp is None:
                _nlp = spacy.blank("en")
    return _nlp


def content_tokens(text: Optional[str], stopwords: AbstractSet[str] = frozenset()) -> List[str]:
    """Lower-cased word tokens of ``text`` without punctuation and stopwords."""
    if not text:
        return []
    doc = get_tokenizer().make_doc(text)
    return [
        token.lower_
        for token in doc
        if not token.is_punct and not token.is_space and token.lower_ not in stopwords
    ]
