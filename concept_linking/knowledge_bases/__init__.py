"""Knowledge base connections, graph loaders and the knowledge base service."""

from .jsonl import JSONLGraphLoader, load_jsonl_graph  # noqa: F401
from .local import LocalConnection, load_rdf_graph  # noqa: F401
from .remote import RemoteConnection  # noqa: F401
from .service import KnowledgeBaseService  # noqa: F401
