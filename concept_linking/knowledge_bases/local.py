import logging
from typing import Dict, List, Optional

from rdflib import Graph
from rdflib.util import guess_format

from concept_linking.registry import graph_loaders

logger = logging.getLogger(__name__)


class LocalConnection:
    """Read connection over an in-process rdflib graph."""

    def __init__(self, graph: Graph):
        self.graph = graph

    def select(self, query: str) -> List[Dict[str, Optional[str]]]:
        result = self.graph.query(query)
        rows: List[Dict[str, Optional[str]]] = []
        for row in result:
            rows.append(
                {var: (str(value) if value is not None else None) for var, value in row.asdict().items()}
            )
        return rows

    def close(self) -> None:
        # The graph is shared by every connection of the knowledge base
        pass


@graph_loaders.register("rdf")
def load_rdf_graph(path: str, format: Optional[str] = None, **_: object) -> Graph:
    """Parse an RDF file (Turtle, N-Triples, RDF/XML, ...) into a graph."""
    graph = Graph()
    graph.parse(path, format=format or guess_format(path) or "turtle")
    logger.info(f"Loaded {len(graph)} triples from {path}")
    return graph
