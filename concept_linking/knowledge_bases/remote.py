import logging
from typing import Dict, List, Optional

from SPARQLWrapper import JSON, POST, SPARQLWrapper

from concept_linking.errors import QueryExecutionError

logger = logging.getLogger(__name__)


class RemoteConnection:
    """Read connection to a remote SPARQL endpoint."""

    def __init__(self, endpoint_url: str, timeout: Optional[float] = None):
        self.endpoint_url = endpoint_url
        self.sparql = SPARQLWrapper(endpoint_url)
        self.sparql.setReturnFormat(JSON)
        self.sparql.setMethod(POST)
        if timeout is not None:
            self.sparql.setTimeout(int(timeout))

    def select(self, query: str) -> List[Dict[str, Optional[str]]]:
        self.sparql.setQuery(query)
        results = self.sparql.query().convert()
        if not isinstance(results, dict) or "results" not in results:
            raise QueryExecutionError(
                f"Unexpected response from {self.endpoint_url}: {results!r}", query
            )
        variables = results.get("head", {}).get("vars", [])
        rows: List[Dict[str, Optional[str]]] = []
        for binding in results["results"].get("bindings", []):
            row: Dict[str, Optional[str]] = {var: None for var in variables}
            for var, term in binding.items():
                row[var] = term.get("value")
            # Endpoints report the label language on the literal itself
            label = binding.get("label")
            if label is not None and not row.get("language"):
                row["language"] = label.get("xml:lang")
            rows.append(row)
        logger.debug(f"Endpoint {self.endpoint_url} returned {len(rows)} rows")
        return rows

    def close(self) -> None:
        self.sparql.resetQuery()
