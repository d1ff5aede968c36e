"""
Candidate generation against a single knowledge base.

Four strategies are run, each as its own backend query, and their results
are unioned by IRI (first occurrence wins, in strategy order):

1. IRI match, if the query is an absolute IRI
2. Exact label match of query and mention
3. Label prefix match of the query
4. Label substring match of query and mention

Prefix and substring matching are skipped for inputs shorter than the
knowledge base's length threshold. Very short inputs against remote
full-text backends return many low-precision results and are slow, while
local graphs can be searched unconditionally.
"""

import logging
import time
from typing import List, Optional, Tuple

from concept_linking import querybuilder
from concept_linking.errors import QueryExecutionError
from concept_linking.knowledge_bases.service import KnowledgeBaseService
from concept_linking.querybuilder import QueryConditions
from concept_linking.types import (
    CandidateResult,
    Handle,
    KnowledgeBase,
    RepositoryType,
    ResultStatus,
    ValueType,
)
from concept_linking.utils.iri import is_absolute_iri

logger = logging.getLogger(__name__)


class CandidateGenerator:
    def __init__(
        self,
        kb_service: KnowledgeBaseService,
        local_threshold: int = 0,
        remote_threshold: int = 3,
    ):
        self.kb_service = kb_service
        self.local_threshold = local_threshold
        self.remote_threshold = remote_threshold

    def threshold(self, kb: KnowledgeBase) -> int:
        """Minimum trimmed input length for prefix/substring matching."""
        return self.local_threshold if kb.type == RepositoryType.LOCAL else self.remote_threshold

    def strategies(
        self,
        kb: KnowledgeBase,
        scope: Optional[str],
        value_type: ValueType,
        query: Optional[str],
        mention: Optional[str],
    ) -> List[Tuple[str, QueryConditions]]:
        """Build the condition sets to run for one lookup, in strategy order."""
        threshold = self.threshold(kb)
        if scope is not None and not kb.supports_scope:
            # An unscoped search would return items outside the scope
            return []
        base = querybuilder.for_value_type(value_type, kb)
        if scope is not None:
            # Scope-limiting must always happen before label matching!
            base = base.descendants_of(scope)

        strategies: List[Tuple[str, QueryConditions]] = []

        if query is not None and is_absolute_iri(query):
            strategies.append(("iri", base.with_identifier(query)))

        # Exact matches are queried separately because a backend's own ranking
        # may push them out of the first N prefix/substring results
        exact_labels = [s for s in (query, mention) if s is not None and s.strip()]
        if exact_labels:
            strategies.append(("exact", base.with_label_matching_exactly_any_of(*exact_labels)))

        if query is not None and len(query.strip()) >= threshold:
            strategies.append(("prefix", base.with_label_starting_with(query)))

        long_labels = [s.strip() for s in (query, mention) if s is not None]
        long_labels = [s for s in long_labels if len(s) >= threshold]
        if long_labels:
            strategies.append(("contains", base.with_label_matching_any_of(*long_labels)))

        return [(name, c.retrieve_label().retrieve_description()) for name, c in strategies]

    def _execute(self, kb: KnowledgeBase, conditions: QueryConditions) -> List[Handle]:
        if kb.read_only:
            return self.kb_service.list_handles_caching(kb, conditions)
        return self.kb_service.list_handles(kb, conditions)

    def generate(
        self,
        kb: KnowledgeBase,
        scope: Optional[str],
        value_type: ValueType,
        query: Optional[str],
        mention: Optional[str],
    ) -> CandidateResult:
        start_time = time.monotonic()
        if scope is not None and not kb.supports_scope:
            reason = f"KB [{kb.id}] does not support scope restriction, cannot search in [{scope}]"
            logger.warning(reason)
            return CandidateResult.not_configured(reason)

        result = CandidateResult()
        strategies = self.strategies(kb, scope, value_type, query, mention)

        failures = 0
        for name, conditions in strategies:
            try:
                handles = self._execute(kb, conditions)
            except QueryExecutionError as e:
                failures += 1
                message = f"KB [{kb.id}] {name} strategy failed: {e}"
                logger.warning(message, exc_info=True)
                result.errors.append(message)
                continue
            added = result.handles.update(handles)
            logger.debug(
                f"Found [{len(handles)}] candidates ({added} new) in KB [{kb.id}] "
                f"using {name} strategy for query [{query}] mention [{mention}]"
            )

        if strategies and failures == len(strategies):
            result.status = ResultStatus.FAILED

        logger.debug(
            f"Generated [{len(result.handles)}] candidates in KB [{kb.id}] in "
            f"{(time.monotonic() - start_time) * 1000:.0f}ms"
        )
        return result
