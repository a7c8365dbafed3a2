"""
Concept domain model.

Defines the ontology Concept value plus the small enumerations that qualify
findings (Duration) and patients (Sex, SexBias).
"""

import random
from dataclasses import dataclass
from enum import Enum

# Well-known SNOMED CT identifiers used by the synthesis engine
SCT_DIAGNOSIS_ROOT = 64572001  # Disease (disorder)
SCT_DISEASE = 64572001
SCT_FINDING_SITE = 363698007  # attribute: finding site
SCT_THORACIC_STRUCTURE = 51185008


@dataclass(frozen=True)
class Concept:
    """
    A node of the medical ontology.

    Attributes:
        concept_id: Stable integer identifier (e.g. 22298006).
        fully_specified_name: Human-readable name (e.g. 'Myocardial infarction (disorder)').
    """

    concept_id: int
    fully_specified_name: str

    def __str__(self) -> str:
        return self.fully_specified_name


class Duration(Enum):
    """
    Temporal course of a clinical finding. Purely descriptive.
    """
    UNKNOWN = 0
    ACUTE = 1
    SUBACUTE = 2
    CHRONIC = 3
    EPISODIC = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_label(cls, label: str) -> "Duration":
        """
        Convert a label such as 'Acute' or ' subacute ' into the enum.
        """
        key = label.strip().upper()
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown duration label: {label!r}")

    def __str__(self) -> str:
        return self.label


# Durations a synthesized problem may carry (unknown is never drawn)
DRAWABLE_DURATIONS = (Duration.ACUTE, Duration.SUBACUTE, Duration.CHRONIC, Duration.EPISODIC)


class Sex(Enum):
    MALE = 1
    FEMALE = 2

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "Sex":
        key = label.strip().upper()
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown sex label: {label!r}")


class SexBias(Enum):
    """
    Limits a diagnosis to one sex, where appropriate.
    """
    MEN_ONLY = 0
    FEMALE_ONLY = 1
    NO_BIAS = 2

    def random_sex(self, rng: random.Random) -> Sex:
        """
        Resolve the bias into a concrete sex; no bias flips a fair coin.
        """
        if self is SexBias.MEN_ONLY:
            return Sex.MALE
        if self is SexBias.FEMALE_ONLY:
            return Sex.FEMALE
        if rng.random() >= 0.5:
            return Sex.MALE
        return Sex.FEMALE
