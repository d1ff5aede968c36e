"""
Concept linking package.

Links free text to knowledge base items: candidates are retrieved from one
or more local or remote knowledge bases using several SPARQL query
strategies, deduplicated and ranked with pluggable feature generators.
"""

__all__ = [
    "ConceptLinkingService",
    "LinkingConfig",
    "Handle",
    "KnowledgeBase",
    "ValueType",
]

__version__ = "0.1.0"

from .config import LinkingConfig  # noqa: E402
from .service import ConceptLinkingService  # noqa: E402
from .types import Handle, KnowledgeBase, ValueType  # noqa: E402
