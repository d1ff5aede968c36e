"""Exceptions raised by the concept linking components."""


class ConceptLinkingError(Exception):
    """Base class for recoverable concept linking failures."""


class QueryExecutionError(ConceptLinkingError):
    """A knowledge base query could not be executed (connectivity, bad query)."""

    def __init__(self, message: str, query: str = "") -> None:
        super().__init__(message)
        self.query = query


class RankingBackendError(ConceptLinkingError):
    """A ranking strategy could not produce an order for the candidates."""
