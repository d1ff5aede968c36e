import logging
from typing import Iterable, List, Optional

from concept_linking.errors import RankingBackendError
from concept_linking.rankers.base import label_sort_key
from concept_linking.registry import rankers
from concept_linking.types import DocumentContext, Handle

logger = logging.getLogger(__name__)


@rankers.register("cross_encoder")
class CrossEncoderRanker:
    """
    Scores (mention in context, candidate) pairs with a sentence-transformers
    cross-encoder. The model is loaded on first use.
    """

    def __init__(
        self,
        model_name: str = "cross-encoder/ms-marco-MiniLM-L-6-v2",
        mention_context_size: int = 150,
        **_: object,
    ):
        self.model_name = model_name
        self.mention_context_size = mention_context_size
        self._model = None

    @property
    def model(self):
        if self._model is None:
            # Lazy import
            try:
                from sentence_transformers import CrossEncoder
            except ImportError:
                raise ImportError(
                    "sentence-transformers required. Install with: pip install sentence-transformers"
                )
            self._model = CrossEncoder(self.model_name)
            logger.info(f"Cross-encoder ranker initialized: {self.model_name}")
        return self._model

    def _format_query(
        self,
        query: Optional[str],
        mention: Optional[str],
        document_context: Optional[DocumentContext],
        mention_offset: int,
    ) -> str:
        text = mention or query or ""
        if document_context is not None and mention:
            window = document_context.window(
                mention_offset, mention_offset + len(mention), self.mention_context_size
            )
            if window:
                text = f"{text} | {window}"
        return text

    @staticmethod
    def _format_candidate(handle: Handle) -> str:
        return f"{handle.ui_label} ({handle.description or ''})"

    def rank(
        self,
        query: Optional[str],
        mention: Optional[str],
        candidates: Iterable[Handle],
        document_context: Optional[DocumentContext],
        mention_offset: int,
    ) -> List[Handle]:
        ordered = sorted(candidates, key=label_sort_key)
        if not ordered:
            return []
        text = self._format_query(query, mention, document_context, mention_offset)
        pairs = [(text, self._format_candidate(h)) for h in ordered]
        try:
            scores = self.model.predict(pairs)
        except (ImportError, OSError, RuntimeError, ValueError) as e:
            raise RankingBackendError(f"Cross-encoder {self.model_name} failed: {e}") from e
        keyed = sorted(range(len(ordered)), key=lambda i: (-float(scores[i]), i))
        return [ordered[i] for i in keyed]
