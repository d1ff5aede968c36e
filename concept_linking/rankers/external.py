import logging
from typing import Iterable, List, Optional

import requests

from concept_linking.errors import RankingBackendError
from concept_linking.rankers.base import label_sort_key
from concept_linking.registry import rankers
from concept_linking.types import DocumentContext, Handle

logger = logging.getLogger(__name__)


@rankers.register("external")
class ExternalRanker:
    """
    Delegates scoring to an external learning-to-rank server.

    The server receives the query, the mention, the mention context and the
    candidates as JSON and answers with ``{"scores": [...]}``, one score per
    candidate in request order. Any transport or payload problem is raised
    as ``RankingBackendError``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost",
        port: int = 5000,
        path: str = "/rank",
        timeout: Optional[float] = 10.0,
        mention_context_size: int = 150,
        **_: object,
    ):
        self.api_url = f"{base_url}:{port}{path}"
        self.timeout = timeout
        self.mention_context_size = mention_context_size
        logger.info(f"Using external ranker at {self.api_url}")

    def post_http_request(self, payload: dict) -> requests.Response:
        headers = {"User-Agent": "concept-linking", "Content-Type": "application/json"}
        response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return response

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

        context = ""
        if document_context is not None and mention:
            context = document_context.window(
                mention_offset, mention_offset + len(mention), self.mention_context_size
            )
        payload = {
            "query": query,
            "mention": mention,
            "context": context,
            "candidates": [
                {"iri": h.iri, "label": h.label, "description": h.description} for h in ordered
            ],
        }

        try:
            response = self.post_http_request(payload).json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise RankingBackendError(f"Ranking request to {self.api_url} failed: {e}") from e

        scores = response.get("scores") if isinstance(response, dict) else None
        if not isinstance(scores, list) or len(scores) != len(ordered):
            raise RankingBackendError(
                f"Ranking response from {self.api_url} has no usable 'scores': {response}"
            )

        try:
            keyed = [(float(score), i) for i, score in enumerate(scores)]
        except (TypeError, ValueError) as e:
            raise RankingBackendError(f"Non-numeric score in ranking response: {e}") from e

        keyed.sort(key=lambda pair: (-pair[0], pair[1]))
        return [ordered[i] for _, i in keyed]
