from typing import Iterable, List, Optional

from concept_linking.rankers.base import label_sort_key
from concept_linking.registry import rankers
from concept_linking.types import DocumentContext, Handle


@rankers.register("label")
class LabelRanker:
    """Orders candidates lexicographically by label, then IRI."""

    def __init__(self, **_: object):
        pass

    def rank(
        self,
        query: Optional[str],
        mention: Optional[str],
        candidates: Iterable[Handle],
        document_context: Optional[DocumentContext],
        mention_offset: int,
    ) -> List[Handle]:
        return sorted(candidates, key=label_sort_key)
