import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from rdflib import Graph, Literal, URIRef
from rdflib.namespace import RDF, RDFS

from concept_linking.registry import graph_loaders
from concept_linking.utils.iri import is_absolute_iri

logger = logging.getLogger(__name__)

DEFAULT_BASE_IRI = "http://example.org/kb/"


# ============================================================================
# In-Memory Graph Cache
# ============================================================================

_graph_cache: Dict[str, Graph] = {}  # identity_hash -> graph


def _compute_identity_hash(path: str, base_iri: str) -> str:
    """Compute identity hash for a JSONL file (path + mtime + size + base IRI)."""
    stat = os.stat(path)
    raw = f"kb:{path}:{stat.st_mtime}:{stat.st_size}:{base_iri}".encode()
    return hashlib.sha256(raw).hexdigest()


def get_graph_cache_info() -> List[Dict[str, Any]]:
    """Get information about currently cached graphs."""
    return [
        {"identity_hash": key[:12], "triples": len(graph)}
        for key, graph in _graph_cache.items()
    ]


def clear_graph_cache() -> None:
    """Clear the in-memory graph cache."""
    _graph_cache.clear()
    logger.info("Graph cache cleared")


class JSONLGraphLoader:
    """
    Builds an RDF graph from a JSONL file of entity records.

    Each line holds one record:
    ``{"id": "...", "title": "...", "description": "...", "type": "...",
    "parent": "...", "kind": "class|instance|property", "aliases": [...]}``

    - ``id`` is optional and defaults to ``title``. Ids that are not absolute
      IRIs are minted under ``base_iri``.
    - ``parent`` makes the record a class below the given class; ``type``
      makes it an instance of the given class.
    - ``kind`` forces the record to be a class, instance or property.

    Parsed graphs are kept in memory keyed by file identity, and optionally
    written to ``cache_dir/kb`` as N-Triples so later processes skip parsing.
    The cache is invalidated if the source file changes (mtime/size).
    """

    def __init__(
        self,
        path: str,
        base_iri: str = DEFAULT_BASE_IRI,
        language: Optional[str] = None,
        cache_dir: Optional[str] = None,
    ):
        self.source_path = path
        self.base_iri = base_iri
        self.language = language
        self.cache_dir = cache_dir

    @property
    def identity_hash(self) -> str:
        return _compute_identity_hash(self.source_path, self.base_iri)

    def _cache_path(self, cache_dir: str) -> Path:
        """Return the cache file path for this KB."""
        kb_dir = Path(cache_dir) / "kb"
        kb_dir.mkdir(parents=True, exist_ok=True)
        return kb_dir / f"{self.identity_hash}.nt"

    def load(self) -> Graph:
        identity = self.identity_hash
        cached = _graph_cache.get(identity)
        if cached is not None:
            logger.info(f"Reusing cached graph from memory: {self.source_path}")
            return cached

        graph = None
        if self.cache_dir:
            graph = self._load_from_cache(self.cache_dir)
        if graph is None:
            graph = self._parse_jsonl(self.source_path)
            if self.cache_dir:
                self._save_to_cache(graph, self.cache_dir)

        _graph_cache[identity] = graph
        return graph

    def _load_from_cache(self, cache_dir: str) -> Optional[Graph]:
        """Try to load the graph from the disk cache."""
        try:
            cache_file = self._cache_path(cache_dir)
            if not cache_file.exists():
                return None
            graph = Graph()
            graph.parse(str(cache_file), format="nt")
            logger.info(f"Loaded {len(graph)} triples from cache ({cache_file.name})")
            return graph
        except Exception:
            logger.warning("KB cache load failed, will rebuild from JSONL", exc_info=True)
            return None

    def _save_to_cache(self, graph: Graph, cache_dir: str) -> None:
        try:
            cache_file = self._cache_path(cache_dir)
            graph.serialize(destination=str(cache_file), format="nt", encoding="utf-8")
            logger.info(f"Saved KB cache ({cache_file.name})")
        except Exception:
            logger.warning("Failed to save KB cache", exc_info=True)

    def _iri(self, value: str) -> URIRef:
        if is_absolute_iri(value):
            return URIRef(value)
        return URIRef(self.base_iri + quote(value.replace(" ", "_"), safe=""))

    def _literal(self, value: str) -> Literal:
        return Literal(value, lang=self.language) if self.language else Literal(value)

    def _parse_jsonl(self, path: str) -> Graph:
        """Parse the JSONL file into a graph."""
        graph = Graph()
        count = 0
        with Path(path).open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                item = json.loads(line)
                # ID is optional - fall back to title if not provided
                entity_id = item.get("id") or item.get("title")
                entity_title = item.get("title") or item.get("id")
                if not entity_id or not entity_title:
                    logger.warning(f"Skipping entity without id or title: {item}")
                    continue
                self._add_record(graph, entity_id, entity_title, item)
                count += 1
        logger.info(f"Loaded {count} entities ({len(graph)} triples) from {path}")
        return graph

    def _add_record(self, graph: Graph, entity_id: str, title: str, item: Dict[str, Any]) -> None:
        subject = self._iri(entity_id)
        graph.add((subject, RDFS.label, self._literal(title)))
        for alias in item.get("aliases") or []:
            graph.add((subject, RDFS.label, self._literal(alias)))
        if item.get("description"):
            graph.add((subject, RDFS.comment, self._literal(item["description"])))

        kind = item.get("kind")
        if kind == "property":
            graph.add((subject, RDF.type, RDF.Property))
            return
        if kind == "class" or item.get("parent"):
            graph.add((subject, RDF.type, RDFS.Class))
            if item.get("parent"):
                graph.add((subject, RDFS.subClassOf, self._iri(item["parent"])))
            return
        types = item.get("type")
        if isinstance(types, str):
            types = [types]
        for type_id in types or []:
            graph.add((subject, RDF.type, self._iri(type_id)))


@graph_loaders.register("jsonl")
def load_jsonl_graph(
    path: str,
    base_iri: str = DEFAULT_BASE_IRI,
    language: Optional[str] = None,
    cache_dir: Optional[str] = None,
    **_: object,
) -> Graph:
    return JSONLGraphLoader(path, base_iri=base_iri, language=language, cache_dir=cache_dir).load()
