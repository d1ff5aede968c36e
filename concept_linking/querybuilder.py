"""
Immutable SPARQL query builder for knowledge base lookups.

A ``QueryConditions`` value describes a single retrieval strategy: which kind
of item is sought, an optional scope, the identifier/label predicates and the
fields to retrieve. Every transformation returns a new value, so a scoped base
can be shared by several strategies without aliasing.

Construction never fails. Invalid input (e.g. an IRI containing characters
that cannot appear in SPARQL) is reported as ``QueryExecutionError`` when the
query is rendered or executed.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, Hashable, List, Optional, Protocol, Tuple

from concept_linking.errors import QueryExecutionError
from concept_linking.types import Handle, KnowledgeBase, ValueType

logger = logging.getLogger(__name__)

_INVALID_IRI_CHARS = re.compile(r'[\s<>"{}|^`\\]')

# Predicate kinds
IDENTIFIER = "identifier"
LABEL_EXACT = "label_exact"
LABEL_PREFIX = "label_prefix"
LABEL_CONTAINS = "label_contains"


class Connection(Protocol):
    """Read connection to a knowledge base that can run SPARQL SELECT queries."""

    def select(self, query: str) -> List[Dict[str, Optional[str]]]:
        ...

    def close(self) -> None:
        ...


@dataclass(frozen=True)
class Predicate:
    kind: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class QueryConditions:
    """Description of one knowledge base lookup."""

    kb: KnowledgeBase = field(compare=False, hash=False)
    value_type: ValueType
    scope: Optional[str] = None
    predicates: Tuple[Predicate, ...] = ()
    label: bool = False
    description: bool = False

    # -- transformations -------------------------------------------------

    def with_identifier(self, iri: str) -> "QueryConditions":
        return self._add(Predicate(IDENTIFIER, (iri,)))

    def descendants_of(self, scope: str) -> "QueryConditions":
        return replace(self, scope=scope)

    def with_label_matching_exactly_any_of(self, *labels: str) -> "QueryConditions":
        return self._add(Predicate(LABEL_EXACT, tuple(labels)))

    def with_label_starting_with(self, prefix: str) -> "QueryConditions":
        return self._add(Predicate(LABEL_PREFIX, (prefix,)))

    def with_label_matching_any_of(self, *labels: str) -> "QueryConditions":
        return self._add(Predicate(LABEL_CONTAINS, tuple(labels)))

    def retrieve_label(self) -> "QueryConditions":
        return replace(self, label=True)

    def retrieve_description(self) -> "QueryConditions":
        return replace(self, description=True)

    def _add(self, predicate: Predicate) -> "QueryConditions":
        return replace(self, predicates=self.predicates + (predicate,))

    # -- rendering -------------------------------------------------------

    def cache_key(self) -> Hashable:
        return (
            self.kb.id,
            self.value_type,
            self.scope,
            self.predicates,
            self.label,
            self.description,
        )

    def build_query(self) -> str:
        """Render the conditions as a SPARQL SELECT query."""
        kb = self.kb
        lines = ["SELECT DISTINCT ?subject ?label ?description ?language WHERE {"]
        lines.extend(self._value_type_pattern())

        # Scope-limiting must always come before identifier and label matching
        if self.scope is not None:
            lines.extend(self._scope_pattern(self.scope))

        for i, predicate in enumerate(self.predicates):
            lines.extend(self._predicate_pattern(predicate, f"?matchLabel{i}"))

        if self.label:
            lines.append(f"  OPTIONAL {{ ?subject {_iri(kb.label_iri)} ?label . }}")
            lines.append("  BIND (LANG(?label) AS ?language)")
        if self.description:
            lines.append(
                f"  OPTIONAL {{ ?subject {_iri(kb.description_iri)} ?description . }}"
            )
        lines.append("}")
        lines.append(f"LIMIT {int(kb.max_results)}")
        return "\n".join(lines)

    def _value_type_pattern(self) -> List[str]:
        if self.value_type == ValueType.CONCEPT:
            return self._class_pattern()
        if self.value_type == ValueType.INSTANCE:
            return self._instance_pattern()
        if self.value_type == ValueType.PROPERTY:
            kb = self.kb
            return [f"  ?subject {_iri(kb.type_iri)} {_iri(kb.property_type_iri)} ."]
        if self.value_type == ValueType.ANY_OBJECT:
            return (
                ["  {"]
                + self._class_pattern()
                + ["  } UNION {"]
                + self._instance_pattern()
                + ["  }"]
            )
        raise QueryExecutionError(f"Unknown value type [{self.value_type}]")

    def _class_pattern(self) -> List[str]:
        kb = self.kb
        subclass = _iri(kb.subclass_iri)
        return [
            f"  {{ ?subject {_iri(kb.type_iri)} {_iri(kb.class_iri)} . }}",
            f"  UNION {{ ?subject {subclass} ?superClass . }}",
            f"  UNION {{ ?subClass {subclass} ?subject . }}",
        ]

    def _instance_pattern(self) -> List[str]:
        kb = self.kb
        rdf_type = _iri(kb.type_iri)
        return [
            f"  ?subject {rdf_type} ?instanceType .",
            f"  FILTER NOT EXISTS {{ ?subject {rdf_type} {_iri(kb.class_iri)} . }}",
            f"  FILTER NOT EXISTS {{ ?subject {rdf_type} {_iri(kb.property_type_iri)} . }}",
        ]

    def _scope_pattern(self, scope: str) -> List[str]:
        kb = self.kb
        scope_iri = _iri(scope)
        class_path = f"?subject {_iri(kb.subclass_iri)}+ {scope_iri} ."
        instance_path = f"?subject {_iri(kb.type_iri)}/{_iri(kb.subclass_iri)}* {scope_iri} ."
        if self.value_type == ValueType.CONCEPT:
            return [f"  {class_path}"]
        if self.value_type == ValueType.INSTANCE:
            return [f"  {instance_path}"]
        if self.value_type == ValueType.PROPERTY:
            return [f"  ?subject {_iri(kb.subproperty_iri)}+ {scope_iri} ."]
        return [f"  {{ {class_path} }} UNION {{ {instance_path} }}"]

    def _predicate_pattern(self, predicate: Predicate, var: str) -> List[str]:
        if predicate.kind == IDENTIFIER:
            return [f"  FILTER (?subject = {_iri(predicate.values[0])})"]

        if not predicate.values:
            raise QueryExecutionError(f"Label predicate [{predicate.kind}] needs a value")

        label_pattern = f"  ?subject {_iri(self.kb.label_iri)} {var} ."
        folded = f"LCASE(STR({var}))"
        values = [_literal(v.lower()) for v in predicate.values]
        if predicate.kind == LABEL_EXACT:
            condition = f"{folded} IN ({', '.join(values)})"
        elif predicate.kind == LABEL_PREFIX:
            condition = f"STRSTARTS({folded}, {values[0]})"
        elif predicate.kind == LABEL_CONTAINS:
            condition = " || ".join(f"CONTAINS({folded}, {v})" for v in values)
        else:
            raise QueryExecutionError(f"Unknown predicate [{predicate.kind}]")
        return [label_pattern, f"  FILTER ({condition})"]

    # -- execution -------------------------------------------------------

    def as_handles(self, connection: Connection) -> List[Handle]:
        """Execute the query and map result rows to handles.

        Rows are merged per subject. When an item has several labels or
        descriptions, the lexicographically smallest one is kept so the
        result does not depend on backend row order.
        """
        query = self.build_query()
        try:
            rows = connection.select(query)
        except QueryExecutionError:
            raise
        except Exception as exc:
            raise QueryExecutionError(f"Query failed on KB [{self.kb.id}]: {exc}", query) from exc

        merged: Dict[str, Handle] = {}
        for row in rows:
            iri = row.get("subject")
            if not iri:
                continue
            handle = merged.get(iri)
            if handle is None:
                handle = merged[iri] = Handle(iri=iri)
            self._merge_row(handle, row)
        return list(merged.values())

    def _merge_row(self, handle: Handle, row: Dict[str, Optional[str]]) -> None:
        label = row.get("label")
        language = row.get("language") or None
        if label is not None and self._prefer_label(handle, label, language):
            handle.label = label
            handle.language = language
        description = row.get("description")
        if description is not None and (
            handle.description is None or description < handle.description
        ):
            handle.description = description

    def _prefer_label(self, handle: Handle, label: str, language: Optional[str]) -> bool:
        if handle.label is None:
            return True
        wanted = self.kb.default_language
        if wanted:
            matches_new = language == wanted
            matches_old = handle.language == wanted
            if matches_new != matches_old:
                return matches_new
        return label < handle.label


def for_items(kb: KnowledgeBase) -> QueryConditions:
    return QueryConditions(kb=kb, value_type=ValueType.ANY_OBJECT)


def for_classes(kb: KnowledgeBase) -> QueryConditions:
    return QueryConditions(kb=kb, value_type=ValueType.CONCEPT)


def for_instances(kb: KnowledgeBase) -> QueryConditions:
    return QueryConditions(kb=kb, value_type=ValueType.INSTANCE)


def for_properties(kb: KnowledgeBase) -> QueryConditions:
    return QueryConditions(kb=kb, value_type=ValueType.PROPERTY)


def for_value_type(value_type: ValueType, kb: KnowledgeBase) -> QueryConditions:
    if value_type == ValueType.ANY_OBJECT:
        return for_items(kb)
    if value_type == ValueType.CONCEPT:
        return for_classes(kb)
    if value_type == ValueType.INSTANCE:
        return for_instances(kb)
    if value_type == ValueType.PROPERTY:
        return for_properties(kb)
    raise ValueError(f"Unknown item type: [{value_type}]")


def _iri(value: str) -> str:
    if not value or _INVALID_IRI_CHARS.search(value):
        raise QueryExecutionError(f"Invalid IRI [{value}]")
    return f"<{value}>"


def _literal(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'
