"""Shared fixtures for concept linking tests."""

import json
import os
import tempfile
from typing import Callable, Dict, Iterator, List, Optional

import pytest
from rdflib import Graph, Literal, Namespace, URIRef
from rdflib.namespace import RDF, RDFS

from concept_linking.cache import CandidateCache
from concept_linking.config import LinkingConfig
from concept_linking.features import build_feature_generators
from concept_linking.knowledge_bases import service as kb_service_module
from concept_linking.knowledge_bases.local import LocalConnection
from concept_linking.knowledge_bases.service import KnowledgeBaseService
from concept_linking.rankers.baseline import BaselineRanker
from concept_linking.service import ConceptLinkingService
from concept_linking.types import KnowledgeBase, RepositoryType
from concept_linking.utils.stopwords import load_default_stopwords

EX = Namespace("http://example.org/")

PROJECT = "project-1"


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

SAMPLE_TURTLE = """
@prefix ex: <http://example.org/> .
@prefix rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
@prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .

ex:Place a rdfs:Class ; rdfs:label "Place" .
ex:City a rdfs:Class ; rdfs:subClassOf ex:Place ; rdfs:label "City" .
ex:Capital a rdfs:Class ; rdfs:subClassOf ex:City ; rdfs:label "Capital city" .
ex:Person a rdfs:Class ; rdfs:label "Person" .

ex:paris a ex:Capital ; rdfs:label "Paris" ; rdfs:comment "Capital of France" .
ex:paris_tx a ex:City ; rdfs:label "Paris, Texas" ; rdfs:comment "City in Lamar County, Texas" .
ex:london a ex:Capital ; rdfs:label "London" ; rdfs:comment "Capital of England" .
ex:paris_hilton a ex:Person ; rdfs:label "Paris Hilton" ; rdfs:comment "American media personality" .

ex:bornIn a rdf:Property ; rdfs:label "born in" .
ex:birthPlace a rdf:Property ; rdfs:subPropertyOf ex:bornIn ; rdfs:label "birth place" .
"""


@pytest.fixture
def sample_graph() -> Graph:
    """Small hierarchy of places and people."""
    graph = Graph()
    graph.parse(data=SAMPLE_TURTLE, format="turtle")
    return graph


@pytest.fixture
def cities_graph() -> Graph:
    """Three cities: Paris, Paris (Texas) and London."""
    graph = Graph()
    for iri, label in (
        ("http://example.org/iri1", "Paris"),
        ("http://example.org/iri2", "Paris, Texas"),
        ("http://example.org/iri3", "London"),
    ):
        graph.add((URIRef(iri), RDF.type, EX.City))
        graph.add((URIRef(iri), RDFS.label, Literal(label)))
    return graph


@pytest.fixture
def make_kb() -> Callable[..., KnowledgeBase]:
    def factory(kb_id: str = "kb-local", **kwargs) -> KnowledgeBase:
        kwargs.setdefault("project", PROJECT)
        kwargs.setdefault("name", kb_id)
        return KnowledgeBase(id=kb_id, **kwargs)

    return factory


@pytest.fixture
def local_kb(make_kb) -> KnowledgeBase:
    return make_kb("kb-local")


@pytest.fixture
def connection(sample_graph: Graph) -> LocalConnection:
    return LocalConnection(sample_graph)


# ---------------------------------------------------------------------------
# Mock collaborators
# ---------------------------------------------------------------------------


class FakeRemoteConnection:
    """Stands in for a SPARQL endpoint by querying a local graph."""

    endpoints: Dict[str, Graph] = {}
    failing: set = set()
    queries: List[str] = []
    timeouts: List[Optional[float]] = []

    def __init__(self, endpoint_url: str, timeout: Optional[float] = None):
        self.endpoint_url = endpoint_url
        FakeRemoteConnection.timeouts.append(timeout)

    def select(self, query: str):
        FakeRemoteConnection.queries.append(query)
        if self.endpoint_url in FakeRemoteConnection.failing:
            raise ConnectionError(f"Endpoint {self.endpoint_url} unreachable")
        return LocalConnection(FakeRemoteConnection.endpoints[self.endpoint_url]).select(query)

    def close(self) -> None:
        pass


class FailingConnection:
    """Connection whose every query fails."""

    def __init__(self):
        self.closed = False

    def select(self, query: str):
        raise ConnectionError("backend unreachable")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_remote(monkeypatch) -> Iterator[type]:
    FakeRemoteConnection.endpoints = {}
    FakeRemoteConnection.failing = set()
    FakeRemoteConnection.queries = []
    FakeRemoteConnection.timeouts = []
    monkeypatch.setattr(kb_service_module, "RemoteConnection", FakeRemoteConnection)
    yield FakeRemoteConnection


@pytest.fixture
def stopwords():
    return load_default_stopwords()


@pytest.fixture
def baseline_ranker(stopwords) -> BaselineRanker:
    generators = build_feature_generators(LinkingConfig().feature_generators)
    return BaselineRanker(feature_generators=generators, stopwords=stopwords)


@pytest.fixture
def kb_service() -> KnowledgeBaseService:
    return KnowledgeBaseService(cache=CandidateCache())


@pytest.fixture
def linking_service(kb_service, baseline_ranker) -> ConceptLinkingService:
    return ConceptLinkingService(kb_service, baseline_ranker, max_workers=4)


@pytest.fixture
def add_remote_kb(kb_service, fake_remote, make_kb):
    """Register a remote KB backed by the given graph."""

    def factory(kb_id: str, graph: Graph, **kwargs) -> KnowledgeBase:
        url = f"http://{kb_id}.example.org/sparql"
        fake_remote.endpoints[url] = graph
        kb = make_kb(kb_id, type=RepositoryType.REMOTE, source=url, **kwargs)
        return kb_service.add_knowledge_base(kb)

    return factory


# ---------------------------------------------------------------------------
# Temporary files
# ---------------------------------------------------------------------------


@pytest.fixture
def kb_records() -> List[dict]:
    return [
        {"id": "Place", "title": "Place", "kind": "class"},
        {"id": "City", "title": "City", "parent": "Place"},
        {"id": "Q90", "title": "Paris", "description": "Capital of France", "type": "City"},
        {"id": "Q830149", "title": "Paris, Texas", "description": "City in Texas", "type": "City"},
        {"id": "Q84", "title": "London", "description": "Capital of England", "type": "City"},
    ]


@pytest.fixture
def temp_jsonl_kb(kb_records: List[dict]) -> Iterator[str]:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".jsonl", delete=False, encoding="utf-8") as f:
        for item in kb_records:
            f.write(json.dumps(item) + "\n")
        path = f.name
    yield path
    os.unlink(path)


@pytest.fixture
def temp_cache_dir() -> Iterator[str]:
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir
