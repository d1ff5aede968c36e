import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, TypeVar

from rdflib import Graph

from concept_linking.cache import CandidateCache
from concept_linking.errors import QueryExecutionError
from concept_linking.knowledge_bases.local import LocalConnection
from concept_linking.knowledge_bases.remote import RemoteConnection
from concept_linking.querybuilder import Connection, QueryConditions
from concept_linking.registry import graph_loaders
from concept_linking.types import Handle, KnowledgeBase, RepositoryType

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KnowledgeBaseService:
    """
    Keeps the knowledge bases of all projects and opens connections to them.

    Local knowledge bases are backed by an rdflib graph held in memory; remote
    ones by a SPARQL endpoint. Read-only knowledge bases can be queried
    through a shared ``CandidateCache``.
    """

    def __init__(
        self,
        cache: Optional[CandidateCache] = None,
        cache_dir: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.cache = cache
        self.cache_dir = cache_dir
        self.timeout = timeout
        self._kbs: Dict[str, Dict[str, KnowledgeBase]] = {}
        self._graphs: Dict[str, Graph] = {}

    # -- registration ----------------------------------------------------

    def add_knowledge_base(self, kb: KnowledgeBase, graph: Optional[Graph] = None) -> KnowledgeBase:
        """Register a knowledge base, loading its graph if it is local."""
        project_kbs = self._kbs.setdefault(kb.project, {})
        if kb.id in project_kbs:
            raise ValueError(f"Knowledge base '{kb.id}' already exists in project '{kb.project}'")

        if kb.type == RepositoryType.LOCAL:
            if graph is None:
                graph = self._load_graph(kb)
            self._graphs[self._graph_key(kb)] = graph
        elif not kb.source:
            raise ValueError(f"Remote knowledge base '{kb.id}' needs an endpoint URL as source")

        project_kbs[kb.id] = kb
        logger.info(
            f"Registered {kb.type.value} KB [{kb.id}] in project [{kb.project}] "
            f"(enabled={kb.enabled}, read_only={kb.read_only})"
        )
        return kb

    def _load_graph(self, kb: KnowledgeBase) -> Graph:
        if not kb.source:
            return Graph()
        source_format = kb.source_format
        if source_format is None and kb.source.endswith(".jsonl"):
            source_format = "jsonl"
        if source_format == "jsonl":
            return graph_loaders.get("jsonl")(
                kb.source, language=kb.default_language, cache_dir=self.cache_dir
            )
        if source_format in graph_loaders:
            return graph_loaders.get(source_format)(kb.source)
        # Anything else is an RDF serialization name understood by rdflib
        return graph_loaders.get("rdf")(kb.source, format=source_format)

    @staticmethod
    def _graph_key(kb: KnowledgeBase) -> str:
        return f"{kb.project}/{kb.id}"

    # -- lookup ----------------------------------------------------------

    def get_knowledge_base_by_id(self, project: str, repository_id: str) -> Optional[KnowledgeBase]:
        return self._kbs.get(project, {}).get(repository_id)

    def get_knowledge_bases(self, project: str) -> List[KnowledgeBase]:
        return list(self._kbs.get(project, {}).values())

    def get_enabled_knowledge_bases(self, project: str) -> List[KnowledgeBase]:
        return [kb for kb in self.get_knowledge_bases(project) if kb.enabled]

    def is_enabled(self, project: str, repository_id: str) -> bool:
        kb = self.get_knowledge_base_by_id(project, repository_id)
        return kb is not None and kb.enabled

    def graph(self, kb: KnowledgeBase) -> Graph:
        return self._graphs[self._graph_key(kb)]

    # -- reading ---------------------------------------------------------

    @contextmanager
    def open_read_connection(self, kb: KnowledgeBase) -> Iterator[Connection]:
        """Open a connection that is released however the block exits."""
        connection: Connection
        if kb.type == RepositoryType.LOCAL:
            connection = LocalConnection(self.graph(kb))
        else:
            try:
                connection = RemoteConnection(kb.source, timeout=self.timeout)  # type: ignore[arg-type]
            except Exception as exc:
                raise QueryExecutionError(f"Cannot connect to KB [{kb.id}]: {exc}") from exc
        try:
            yield connection
        finally:
            connection.close()

    def read(self, kb: KnowledgeBase, fn: Callable[[Connection], T]) -> T:
        with self.open_read_connection(kb) as connection:
            return fn(connection)

    def execute(self, conditions: QueryConditions, connection: Connection) -> List[Handle]:
        return conditions.as_handles(connection)

    def list_handles(self, kb: KnowledgeBase, conditions: QueryConditions) -> List[Handle]:
        """Run ``conditions`` on a fresh connection to ``kb``."""
        return self.read(kb, lambda connection: self.execute(conditions, connection))

    def list_handles_caching(self, kb: KnowledgeBase, conditions: QueryConditions) -> List[Handle]:
        """Run ``conditions`` through the candidate cache (read-only KBs only)."""
        if self.cache is None or not kb.read_only:
            return self.list_handles(kb, conditions)
        return self.cache.get_or_load(
            kb.id, conditions.cache_key(), lambda: self.list_handles(kb, conditions)
        )
