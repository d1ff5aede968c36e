"""
Concept linking service.

Entry points used by auto-complete fields and bulk-linking jobs. A lookup
sanitizes the query, selects the knowledge bases in scope, generates
candidates in each of them (in parallel when there are several), unions the
results and ranks them.

Errors are recovered as close to their source as possible. A failing
strategy or knowledge base contributes no candidates and a failing ranker
falls back to label order. ``lookup`` turns anything unexpected into a
visible error handle.
"""

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from concept_linking import features as _features  # noqa: F401  registers feature generators
from concept_linking import rankers as _rankers  # noqa: F401  registers rankers
from concept_linking.cache import CandidateCache
from concept_linking.candidates import CandidateGenerator
from concept_linking.config import LinkingConfig
from concept_linking.errors import RankingBackendError
from concept_linking.features.base import build_feature_generators
from concept_linking.knowledge_bases.service import KnowledgeBaseService
from concept_linking.rankers.base import Ranker
from concept_linking.rankers.label import LabelRanker
from concept_linking.registry import rankers
from concept_linking.types import (
    CandidateResult,
    DocumentContext,
    Handle,
    KnowledgeBase,
    ResultStatus,
    ValueType,
    error_handle,
)
from concept_linking.utils.stopwords import load_default_stopwords, load_stopword_file

logger = logging.getLogger(__name__)

_WILDCARDS = re.compile(r"[*?]")


def sanitize_query(query: Optional[str]) -> str:
    """Remove wildcard characters no backend supports and trim whitespace."""
    if query is None:
        return ""
    return _WILDCARDS.sub("", query).strip()


def parse_lookup_input(query: Optional[str]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Split interactive input into ``(query, label_filter, description_filter)``.

    ``Paris::texas`` searches for ``Paris`` and keeps candidates described as
    ``texas``. A quoted query longer than two characters such as ``"Paris"``
    searches for ``Paris`` and keeps candidates whose label contains it.
    """
    if query is None:
        return None, None, None

    description_filter = None
    if "::" in query:
        query, description_filter = query.split("::", 1)
        description_filter = description_filter.strip() or None

    label_filter = None
    trimmed = query.strip()
    if len(trimmed) > 2 and trimmed.startswith('"') and trimmed.endswith('"'):
        query = label_filter = trimmed[1:-1]

    return query, label_filter, description_filter


@dataclass
class LinkingResponse:
    """Ranked handles plus a human-readable message when the lookup failed."""

    handles: List[Handle]
    error: Optional[str] = None


class ConceptLinkingService:
    def __init__(
        self,
        kb_service: KnowledgeBaseService,
        ranker: Ranker,
        local_threshold: int = 0,
        remote_threshold: int = 3,
        max_workers: int = 4,
    ):
        self.kb_service = kb_service
        self.ranker = ranker
        self.fallback_ranker = LabelRanker()
        self.generator = CandidateGenerator(
            kb_service, local_threshold=local_threshold, remote_threshold=remote_threshold
        )
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, config: LinkingConfig) -> "ConceptLinkingService":
        """Build the service, its knowledge bases and its ranker from configuration."""
        cache = None
        if config.cache.enabled:
            cache = CandidateCache(
                max_entries=config.cache.max_entries, ttl_seconds=config.cache.ttl_seconds
            )
        kb_service = KnowledgeBaseService(
            cache=cache, cache_dir=config.cache_dir, timeout=config.timeout
        )
        for entry in config.knowledge_bases:
            kb_service.add_knowledge_base(KnowledgeBase.from_dict(entry))

        if config.stopwords_path:
            stopwords = load_stopword_file(config.stopwords_path)
        else:
            stopwords = load_default_stopwords()

        ranker = rankers.get(config.ranker.name)(
            feature_generators=build_feature_generators(config.feature_generators),
            stopwords=stopwords,
            candidate_display_limit=config.candidate_display_limit,
            mention_context_size=config.mention_context_size,
            **config.ranker.params,
        )
        logger.info(f"Using ranker [{config.ranker.name}]: {type(ranker).__name__}")

        return cls(
            kb_service,
            ranker,
            local_threshold=config.local_threshold,
            remote_threshold=config.remote_threshold,
            max_workers=config.max_workers,
        )

    # -- generation ------------------------------------------------------

    def generate_candidates(
        self,
        kb: KnowledgeBase,
        scope: Optional[str],
        value_type: ValueType,
        query: Optional[str],
        mention: Optional[str],
    ) -> CandidateResult:
        return self.generator.generate(kb, scope, value_type, query, mention)

    def select_knowledge_bases(
        self, project: str, repository_id: Optional[str]
    ) -> List[KnowledgeBase]:
        if repository_id is not None:
            kb = self.kb_service.get_knowledge_base_by_id(project, repository_id)
            return [kb] if kb is not None and kb.enabled else []
        return self.kb_service.get_enabled_knowledge_bases(project)

    def dispatch(
        self,
        repository_id: Optional[str],
        scope: Optional[str],
        value_type: ValueType,
        query: Optional[str],
        mention: Optional[str],
        project: str,
    ) -> CandidateResult:
        """Generate candidates in every knowledge base in scope and union them."""
        query = sanitize_query(query)

        kbs = self.select_knowledge_bases(project, repository_id)
        if not kbs:
            if repository_id is not None:
                reason = f"Knowledge base [{repository_id}] is missing or disabled in project [{project}]"
            else:
                reason = f"Project [{project}] has no enabled knowledge bases"
            logger.debug(reason)
            return CandidateResult.not_configured(reason)

        if len(kbs) == 1 or self.max_workers == 1:
            results = [self.generate_candidates(kb, scope, value_type, query, mention) for kb in kbs]
        else:
            workers = min(self.max_workers, len(kbs))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="kb-lookup") as pool:
                futures = [
                    pool.submit(self.generate_candidates, kb, scope, value_type, query, mention)
                    for kb in kbs
                ]
                # Union in KB order so the outcome does not depend on completion order
                results = [f.result() for f in futures]

        combined = CandidateResult()
        for result in results:
            combined.handles.update(result.handles)
            combined.errors.extend(result.errors)
        if all(r.status == ResultStatus.FAILED for r in results):
            combined.status = ResultStatus.FAILED
        return combined

    # -- ranking ---------------------------------------------------------

    def rank_candidates(
        self,
        query: Optional[str],
        mention: Optional[str],
        candidates: Iterable[Handle],
        document_context: Optional[DocumentContext] = None,
        mention_offset: int = 0,
    ) -> List[Handle]:
        """Rank the candidates and number them 1..n in output order."""
        start_time = time.monotonic()
        candidates = list(candidates)

        try:
            results = self.ranker.rank(query, mention, candidates, document_context, mention_offset)
        except RankingBackendError:
            logger.warning(
                f"Ranking failed for query [{query}], falling back to label order", exc_info=True
            )
            results = self.fallback_ranker.rank(
                query, mention, candidates, document_context, mention_offset
            )
        except Exception:
            # A broken ranker must not cost the caller its candidates
            logger.exception(
                f"Unexpected ranker error for query [{query}], falling back to label order"
            )
            results = self.fallback_ranker.rank(
                query, mention, candidates, document_context, mention_offset
            )

        for rank, handle in enumerate(results, start=1):
            handle.rank = rank

        logger.debug(
            f"Ranked [{len(results)}] candidates for mention [{mention}] and query [{query}] "
            f"in [{(time.monotonic() - start_time) * 1000:.0f}] ms"
        )
        return results

    # -- entry points ----------------------------------------------------

    def disambiguate(
        self,
        kb: KnowledgeBase,
        scope: Optional[str],
        value_type: ValueType,
        query: Optional[str],
        mention: Optional[str],
        mention_offset: int = 0,
        document_context: Optional[DocumentContext] = None,
    ) -> List[Handle]:
        result = self.generate_candidates(kb, scope, value_type, query, mention)
        return self.rank_candidates(query, mention, result.handles, document_context, mention_offset)

    def search_items(self, kb: KnowledgeBase, query: str) -> List[Handle]:
        """Find classes and instances of ``kb`` matching the query."""
        return self.disambiguate(kb, None, ValueType.ANY_OBJECT, query, None)

    def get_linking_instances_in_kb_scope(
        self,
        repository_id: Optional[str],
        scope: Optional[str],
        value_type: ValueType,
        query: Optional[str],
        mention: Optional[str],
        mention_offset: int,
        document_context: Optional[DocumentContext],
        project: str,
    ) -> List[Handle]:
        result = self.dispatch(repository_id, scope, value_type, query, mention, project)
        return self.rank_candidates(
            sanitize_query(query), mention, result.handles, document_context, mention_offset
        )

    def lookup(
        self,
        repository_id: Optional[str],
        scope: Optional[str],
        value_type: ValueType,
        query: Optional[str],
        mention: Optional[str],
        mention_offset: int,
        document_context: Optional[DocumentContext],
        project: str,
    ) -> LinkingResponse:
        """
        Request boundary for interactive callers; never raises.

        The query may carry two filters applied after ranking:

        - ``query::text`` keeps candidates whose description contains ``text``
        - ``"query"`` keeps candidates whose label contains ``query``

        Both comparisons ignore case. Unexpected errors are returned as a
        single error handle plus a message.
        """
        query, label_filter, description_filter = parse_lookup_input(query)

        if repository_id is not None and not self.kb_service.is_enabled(project, repository_id):
            logger.debug(f"Knowledge base [{repository_id}] is missing or disabled")
            return LinkingResponse(handles=[])

        try:
            handles = self.get_linking_instances_in_kb_scope(
                repository_id,
                scope,
                value_type,
                query,
                mention,
                mention_offset,
                document_context,
                project,
            )
        except Exception as e:
            message = f"An error occurred while retrieving entity candidates: {e}"
            logger.exception("An error occurred while retrieving entity candidates")
            handle = error_handle(message)
            handle.rank = 1
            return LinkingResponse(handles=[handle], error=message)

        if label_filter is not None:
            needle = label_filter.lower()
            handles = [h for h in handles if needle in h.ui_label.lower()]
        if description_filter:
            needle = description_filter.lower()
            handles = [h for h in handles if needle in (h.description or "").lower()]
        for rank, handle in enumerate(handles, start=1):
            handle.rank = rank
        return LinkingResponse(handles=handles)
