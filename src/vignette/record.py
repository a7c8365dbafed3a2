"""
Record domain model.

A Record is one synthesized patient scenario: age, sex, time-qualified
clinical findings and the single correct diagnosis. This module also holds
the JSON exchange codec for batches of records.
"""

from __future__ import annotations

import json
import typing
from dataclasses import dataclass

from .concept import Concept, Duration, Sex
from .ontology import OntologyGateway


@dataclass(frozen=True)
class ClinicalFinding:
    """
    A finding concept with its duration, e.g. acute chest pain.

    Attributes:
        concept: The finding concept.
        parents: Cached is-a ancestors of the concept.
        duration: Temporal course of the finding.
    """

    concept: Concept
    parents: tuple[Concept, ...]
    duration: Duration

    def __str__(self) -> str:
        return f"{self.duration.label} {self.concept.fully_specified_name}"


@dataclass(frozen=True)
class Record:
    """
    Attributes:
        age: Age in whole years, never negative.
        sex: Sex of the patient.
        findings: Findings in the order of the Truth they were sampled from.
        answer: The single best answer (the diagnosis).
        parents: Cached is-a ancestors of the answer.
    """

    age: int
    sex: Sex
    findings: tuple[ClinicalFinding, ...]
    answer: Concept
    parents: tuple[Concept, ...]

    def __post_init__(self):
        if self.age < 0:
            raise ValueError(f"age must not be negative, got {self.age}")

    def __str__(self) -> str:
        findings = ", ".join(str(f) for f in self.findings)
        return f"[{findings}] --> {self.answer.fully_specified_name}"


# ----------------------
# JSON exchange codec
# ----------------------


def _concept_to_dict(concept: Concept, parents: typing.Sequence[Concept]) -> dict:
    return {
        "ConceptID": concept.concept_id,
        "FullySpecifiedName": concept.fully_specified_name,
        "Parents": [p.concept_id for p in parents],
    }


def record_to_dict(record: Record) -> dict:
    return {
        "Age": record.age,
        "Sex": record.sex.label,
        "Findings": [
            {
                "Concept": _concept_to_dict(f.concept, f.parents),
                "Duration": f.duration.label,
            }
            for f in record.findings
        ],
        "Answer": _concept_to_dict(record.answer, record.parents),
    }


def record_from_dict(data: dict, ontology: OntologyGateway) -> Record:
    """
    Rebuild a Record from its exchange shape. Concepts are resolved through
    `ontology` and their ancestors recomputed; the serialized parent lists
    are a cache and are not trusted.
    """
    findings = []
    for item in data.get("Findings", []):
        concept = ontology.fetch_concept(int(item["Concept"]["ConceptID"]))
        findings.append(
            ClinicalFinding(
                concept=concept,
                parents=tuple(ontology.fetch_ancestors(concept)),
                duration=Duration.from_label(item["Duration"]),
            )
        )
    answer = ontology.fetch_concept(int(data["Answer"]["ConceptID"]))
    return Record(
        age=int(data["Age"]),
        sex=Sex.from_label(data["Sex"]),
        findings=tuple(findings),
        answer=answer,
        parents=tuple(ontology.fetch_ancestors(answer)),
    )


def dumps(records: typing.Iterable[Record]) -> str:
    """Serialize a batch of records as a pretty-printed JSON array."""
    return json.dumps([record_to_dict(r) for r in records], indent=2)


def loads(text: str, ontology: OntologyGateway) -> list[Record]:
    return [record_from_dict(item, ontology) for item in json.loads(text)]
