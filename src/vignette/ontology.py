"""
Ontology gateway.

The synthesis engine only ever reads the concept store through the
`OntologyGateway` contract below. `SnapshotOntology` is the bundled
implementation: a read-only SNOMED-shaped snapshot whose is-a hierarchy is
held in an hpotk ontology graph and whose attribute relationships
(e.g. finding site) are indexed in plain dictionaries.

Snapshot format (JSON, optionally gzip-compressed)
--------------------------------------------------
{
    "version": "2024-01-31",
    "concepts": [{"id": 22298006, "name": "Myocardial infarction (disorder)"}, ...],
    "is_a": [[22298006, 64572001], ...],              # [child, parent]
    "relationships": [[22298006, 363698007, 80891009], ...]  # [source, type, destination]
}
"""

from __future__ import annotations

import abc
import gzip
import json
import logging
import pathlib
import typing
from collections import defaultdict, deque

import hpotk
from hpotk.graph import CsrIndexedGraphFactory

from .concept import Concept

logger = logging.getLogger(__name__)

_PREFIX = "SCTID"


class OntologyLookupError(KeyError):
    """Raised when a concept identifier does not resolve in the concept store."""


class OntologyGateway(metaclass=abc.ABCMeta):
    """
    Read-only queries over a concept graph. Every call is fail-fast: an
    unknown identifier raises `OntologyLookupError`.
    """

    @abc.abstractmethod
    def fetch_concept(self, concept_id: int) -> Concept:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_parents(self, concept: Concept) -> list[Concept]:
        # direct is-a parents only
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_recursive_descendants(self, concept: Concept) -> list[Concept]:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_ancestors(self, concept: Concept) -> list[Concept]:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_related_parents(self, concept: Concept, relation_kind: int) -> list[Concept]:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_related_children(self, concept: Concept, relation_kind: int) -> list[Concept]:
        raise NotImplementedError

    @abc.abstractmethod
    def fetch_siblings(self, concept: Concept) -> list[Concept]:
        raise NotImplementedError

    @abc.abstractmethod
    def is_descendant_of(self, concept: Concept, ancestor_id: int) -> bool:
        raise NotImplementedError

    def generalize_to_one_of(
        self, concept: Concept, candidates: typing.Mapping[int, Concept]
    ) -> tuple[typing.Optional[Concept], bool]:
        """
        Walk outwards from `concept` (itself first, then parents breadth-first)
        and return the first concept that is one of `candidates`.
        Within one level of the walk the lowest concept id wins.
        """
        seen: set[int] = set()
        level = [concept]
        while level:
            for current in sorted(level, key=lambda c: c.concept_id):
                if current.concept_id in candidates:
                    return candidates[current.concept_id], True
            seen.update(c.concept_id for c in level)
            next_level: dict[int, Concept] = {}
            for current in level:
                for parent in self.fetch_parents(current):
                    if parent.concept_id not in seen:
                        next_level[parent.concept_id] = parent
            level = list(next_level.values())
        return None, False


class SnapshotOntology(OntologyGateway):
    def __init__(
        self,
        concepts: typing.Iterable[Concept],
        is_a: typing.Iterable[tuple[int, int]],
        relationships: typing.Iterable[tuple[int, int, int]] = (),
        version: typing.Optional[str] = None,
    ):
        self.version = version
        self._concepts: dict[int, Concept] = {c.concept_id: c for c in concepts}

        edges: list[tuple[hpotk.TermId, hpotk.TermId]] = []
        self._in_graph: set[int] = set()
        self._parents: dict[int, set[int]] = defaultdict(set)
        self._children: dict[int, set[int]] = defaultdict(set)
        for child, parent in is_a:
            self._require(child)
            self._require(parent)
            edges.append((_to_term_id(child), _to_term_id(parent)))
            self._in_graph.update((child, parent))
            self._parents[child].add(parent)
            self._children[parent].add(child)
        self._graph = CsrIndexedGraphFactory().create_graph(edges) if edges else None

        # relation kind -> source -> destinations, and the reverse index
        self._related_parents: dict[int, dict[int, set[int]]] = defaultdict(lambda: defaultdict(set))
        self._related_children: dict[int, dict[int, set[int]]] = defaultdict(lambda: defaultdict(set))
        for source, kind, destination in relationships:
            self._require(source)
            self._require(destination)
            self._related_parents[kind][source].add(destination)
            self._related_children[kind][destination].add(source)

        self._ancestor_cache: dict[int, list[Concept]] = {}
        logger.debug(
            "Loaded snapshot %s: %d concepts, %d is-a edges",
            version, len(self._concepts), len(edges),
        )

    def _require(self, concept_id: int) -> Concept:
        try:
            return self._concepts[concept_id]
        except KeyError:
            raise OntologyLookupError(f"Unknown concept id: {concept_id}") from None

    def _resolve(self, ids: typing.Iterable[int]) -> list[Concept]:
        return [self._concepts[i] for i in sorted(ids)]

    def fetch_concept(self, concept_id: int) -> Concept:
        return self._require(int(concept_id))

    def fetch_parents(self, concept: Concept) -> list[Concept]:
        self._require(concept.concept_id)
        return self._resolve(self._parents.get(concept.concept_id, ()))

    def fetch_recursive_descendants(self, concept: Concept) -> list[Concept]:
        self._require(concept.concept_id)
        if concept.concept_id not in self._in_graph:
            return []
        found = (_from_term_id(t) for t in self._graph.get_descendants(_to_term_id(concept.concept_id)))
        return self._resolve(i for i in found if i in self._concepts)

    def fetch_ancestors(self, concept: Concept) -> list[Concept]:
        """
        All is-a ancestors, nearest first. Memoised per concept id; callers
        must not mutate the returned list.

        The cache is filled without a lock. Concurrent callers may compute
        the same entry twice, but every computation yields the same list,
        so the race only costs repeated work.
        """
        cached = self._ancestor_cache.get(concept.concept_id)
        if cached is not None:
            return cached
        self._require(concept.concept_id)
        ancestors: list[Concept] = []
        if concept.concept_id in self._in_graph:
            seen = {concept.concept_id}
            queue = deque([_to_term_id(concept.concept_id)])
            while queue:
                level = sorted(_from_term_id(t) for t in self._graph.get_parents(queue.popleft()))
                for parent_id in level:
                    if parent_id in seen or parent_id not in self._concepts:
                        continue
                    seen.add(parent_id)
                    ancestors.append(self._concepts[parent_id])
                    queue.append(_to_term_id(parent_id))
        self._ancestor_cache[concept.concept_id] = ancestors
        return ancestors

    def fetch_related_parents(self, concept: Concept, relation_kind: int) -> list[Concept]:
        self._require(concept.concept_id)
        return self._resolve(self._related_parents[relation_kind].get(concept.concept_id, ()))

    def fetch_related_children(self, concept: Concept, relation_kind: int) -> list[Concept]:
        self._require(concept.concept_id)
        return self._resolve(self._related_children[relation_kind].get(concept.concept_id, ()))

    def fetch_siblings(self, concept: Concept) -> list[Concept]:
        self._require(concept.concept_id)
        siblings: set[int] = set()
        for parent in self._parents.get(concept.concept_id, ()):
            siblings.update(self._children[parent])
        siblings.discard(concept.concept_id)
        return self._resolve(siblings)

    def is_descendant_of(self, concept: Concept, ancestor_id: int) -> bool:
        # "is a" includes the concept itself
        self._require(concept.concept_id)
        if concept.concept_id == ancestor_id:
            return True
        if concept.concept_id not in self._in_graph or ancestor_id not in self._in_graph:
            return False
        return self._graph.is_descendant_of(_to_term_id(concept.concept_id), _to_term_id(ancestor_id))


def _to_term_id(concept_id: int) -> hpotk.TermId:
    return hpotk.TermId.from_curie(f"{_PREFIX}:{concept_id}")


def _from_term_id(term_id: hpotk.TermId) -> int:
    # the graph may add a synthetic owl:Thing root; it maps to no concept
    return int(term_id.id) if term_id.prefix == _PREFIX else -1


def load_snapshot(path: typing.Union[str, pathlib.Path]) -> SnapshotOntology:
    """
    Load a concept snapshot from a JSON file. Files ending in `.gz` are
    decompressed on the fly.
    """
    path = pathlib.Path(path)
    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "rt", encoding="utf-8") as fh:
        data = json.load(fh)
    return SnapshotOntology(
        concepts=(Concept(int(c["id"]), c["name"]) for c in data["concepts"]),
        is_a=((int(child), int(parent)) for child, parent in data.get("is_a", [])),
        relationships=(
            (int(source), int(kind), int(destination))
            for source, kind, destination in data.get("relationships", [])
        ),
        version=data.get("version"),
    )
