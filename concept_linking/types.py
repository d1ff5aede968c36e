from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Protocol

RDF_TYPE = "http://www.w3.org/1999/02/22-rdf-syntax-ns#type"
RDF_PROPERTY = "http://www.w3.org/1999/02/22-rdf-syntax-ns#Property"
RDFS_CLASS = "http://www.w3.org/2000/01/rdf-schema#Class"
RDFS_SUBCLASS_OF = "http://www.w3.org/2000/01/rdf-schema#subClassOf"
RDFS_SUBPROPERTY_OF = "http://www.w3.org/2000/01/rdf-schema#subPropertyOf"
RDFS_LABEL = "http://www.w3.org/2000/01/rdf-schema#label"
RDFS_COMMENT = "http://www.w3.org/2000/01/rdf-schema#comment"

ERROR_IRI = "http://ERROR"


class ValueType(str, Enum):
    """Kind of knowledge base item a lookup is restricted to."""

    ANY_OBJECT = "any_object"
    CONCEPT = "concept"
    INSTANCE = "instance"
    PROPERTY = "property"


class RepositoryType(str, Enum):
    """Where a knowledge base lives."""

    LOCAL = "local"
    REMOTE = "remote"


class ResultStatus(str, Enum):
    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    FAILED = "failed"


@dataclass(eq=False)
class Handle:
    """Lightweight reference to a knowledge base item.

    Two handles are equal when their IRIs are equal. ``rank`` is assigned
    after ranking and is not part of the identity.
    """

    iri: str
    label: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    rank: int = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Handle):
            return NotImplemented
        return self.iri == other.iri

    def __hash__(self) -> int:
        return hash(self.iri)

    @property
    def ui_label(self) -> str:
        return self.label or self.iri

    def copy(self) -> "Handle":
        return replace(self)

    def to_dict(self) -> Dict[str, object]:
        return {
            "iri": self.iri,
            "label": self.label,
            "description": self.description,
            "language": self.language,
            "rank": self.rank,
        }


def error_handle(message: str) -> Handle:
    """Sentinel handle that lets a UI render a failed lookup."""
    return Handle(iri=ERROR_IRI, label="ERROR", description=message, language="en")


def is_error_handle(handle: Handle) -> bool:
    return handle.iri == ERROR_IRI


@dataclass
class KnowledgeBase:
    """Project-scoped knowledge base description with its schema mapping."""

    id: str
    name: str
    project: str
    type: RepositoryType = RepositoryType.LOCAL
    enabled: bool = True
    read_only: bool = False
    supports_scope: bool = True
    source: Optional[str] = None
    source_format: Optional[str] = None
    default_language: Optional[str] = None
    max_results: int = 1000
    class_iri: str = RDFS_CLASS
    subclass_iri: str = RDFS_SUBCLASS_OF
    type_iri: str = RDF_TYPE
    label_iri: str = RDFS_LABEL
    description_iri: str = RDFS_COMMENT
    property_type_iri: str = RDF_PROPERTY
    subproperty_iri: str = RDFS_SUBPROPERTY_OF

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "KnowledgeBase":
        missing = [key for key in ("id", "project") if not data.get(key)]
        if missing:
            raise ValueError(f"Knowledge base entry is missing {missing}: {data}")
        values = dict(data)
        values.setdefault("name", values["id"])
        if "type" in values:
            values["type"] = RepositoryType(values["type"])
        unknown = set(values) - set(KnowledgeBase.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown knowledge base settings {sorted(unknown)}")
        return KnowledgeBase(**values)  # type: ignore[arg-type]


class DocumentContext(Protocol):
    """Gives access to the text surrounding a mention."""

    def window(self, begin: int, end: int, size: int) -> str:
        ...


@dataclass(frozen=True)
class RankingContext:
    """Everything a feature generator may look at besides the candidate."""

    query: Optional[str]
    mention: Optional[str] = None
    mention_offset: int = 0
    document: Optional[DocumentContext] = None
    stopwords: FrozenSet[str] = frozenset()
    context_size: int = 150

    @property
    def mention_end(self) -> int:
        return self.mention_offset + len(self.mention or "")

    def surrounding_text(self) -> str:
        if self.document is None or not self.mention:
            return ""
        return self.document.window(self.mention_offset, self.mention_end, self.context_size)


class CandidateSet:
    """Union of handles keyed by IRI; the first inserted occurrence wins."""

    def __init__(self, handles: Iterable[Handle] = ()) -> None:
        self._handles: Dict[str, Handle] = {}
        self.update(handles)

    def add(self, handle: Handle) -> bool:
        if handle.iri in self._handles:
            return False
        self._handles[handle.iri] = handle
        return True

    def update(self, handles: Iterable[Handle]) -> int:
        return sum(1 for handle in handles if self.add(handle))

    def __contains__(self, iri: object) -> bool:
        if isinstance(iri, Handle):
            iri = iri.iri
        return iri in self._handles

    def __iter__(self) -> Iterator[Handle]:
        return iter(self._handles.values())

    def __len__(self) -> int:
        return len(self._handles)

    def to_list(self) -> List[Handle]:
        return list(self._handles.values())


@dataclass
class CandidateResult:
    """Outcome of candidate generation for one or more knowledge bases.

    ``status`` separates "nothing matched" (``OK`` with no handles) from
    "repository not available" (``NOT_CONFIGURED``) and "every backend query
    failed" (``FAILED``). ``errors`` also lists failures that only affected
    some strategies.
    """

    handles: CandidateSet = field(default_factory=CandidateSet)
    status: ResultStatus = ResultStatus.OK
    errors: List[str] = field(default_factory=list)

    @staticmethod
    def not_configured(reason: str) -> "CandidateResult":
        return CandidateResult(status=ResultStatus.NOT_CONFIGURED, errors=[reason])

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    @property
    def partial(self) -> bool:
        return self.ok and bool(self.errors)

    def __len__(self) -> int:
        return len(self.handles)
