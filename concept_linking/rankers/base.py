from typing import Iterable, List, Optional, Protocol

from concept_linking.types import DocumentContext, Handle


class Ranker(Protocol):
    """Orders a deduplicated candidate set by relevance."""

    def rank(
        self,
        query: Optional[str],
        mention: Optional[str],
        candidates: Iterable[Handle],
        document_context: Optional[DocumentContext],
        mention_offset: int,
    ) -> List[Handle]:
        ...


def label_sort_key(handle: Handle):
    """Deterministic order used for tie-breaking and as ranking fallback."""
    return ((handle.label or "").lower(), handle.label or "", handle.iri)
