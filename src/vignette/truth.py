"""
Truth domain model and builders.

A Truth is the reusable ground-truth profile of one diagnosis: a bag of
(finding, duration, probability) problems plus demographic parameters.
It is built once, either by walking the ontology (`TruthBuilder`) or from
literal seed data (`ExplicitTruth`), and then sampled many times into
records by `vignette.synthesize`.
"""

from __future__ import annotations

import logging
import random
import typing
from dataclasses import dataclass

from .concept import (
    Concept,
    Duration,
    SexBias,
    DRAWABLE_DURATIONS,
    SCT_DIAGNOSIS_ROOT,
)
from .discovery import SiteFindingDiscoverer
from .ontology import OntologyGateway

logger = logging.getLogger(__name__)

MAX_PROBLEMS = 30
MAX_STD_DEV_AGE = 20


@dataclass(frozen=True)
class Problem:
    """
    One candidate finding of a Truth.

    Attributes:
        concept: The finding concept.
        duration: Temporal qualifier attached whenever the finding is sampled.
        probability: Independent rate in [0, 1] at which the finding appears.
    """

    concept: Concept
    duration: Duration
    probability: float

    def __post_init__(self):
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError(f"probability must lie in [0, 1], got {self.probability!r}")

    def __str__(self) -> str:
        return f"{self.concept.fully_specified_name} ({self.probability:f}%)"


@dataclass(frozen=True)
class Truth:
    """
    Ground-truth profile for one diagnosis.

    Attributes:
        diagnosis: The diagnosis concept.
        ancestors: Cached is-a ancestors of the diagnosis, nearest first.
        problems: Problems in draw order; duplicates are independent draws.
        sex_bias: Which sex(es) the diagnosis affects.
        mean_age: Mean age at presentation.
        std_dev_age: Standard deviation of age, at most min(mean_age, 20).
    """

    diagnosis: Concept
    ancestors: tuple[Concept, ...]
    problems: tuple[Problem, ...]
    sex_bias: SexBias
    mean_age: int
    std_dev_age: int

    def __post_init__(self):
        if self.std_dev_age < 0 or self.std_dev_age > max(min(self.mean_age, MAX_STD_DEV_AGE), 0):
            raise ValueError(
                f"std_dev_age {self.std_dev_age} exceeds min(mean_age, {MAX_STD_DEV_AGE}) "
                f"for mean_age {self.mean_age}"
            )

    def __str__(self) -> str:
        problems = ", ".join(str(p) for p in self.problems)
        return f"{self.diagnosis.fully_specified_name}: {problems}"


def random_age(rng: random.Random) -> int:
    """
    General population age model: mostly adults in [20, 100), with a 1%
    tail of children and young people in [0, 20).
    """
    if rng.random() > 0.01:
        return rng.randrange(80) + 20
    return rng.randrange(20)


def _require_diagnosis(ontology: OntologyGateway, diagnosis: Concept) -> None:
    if not ontology.is_descendant_of(diagnosis, SCT_DIAGNOSIS_ROOT):
        raise ValueError(f"{diagnosis} ({diagnosis.concept_id}) is not a diagnosis")


class TruthBuilder:
    def __init__(
        self,
        ontology: OntologyGateway,
        rng: random.Random,
        discoverer: typing.Optional[SiteFindingDiscoverer] = None,
        legacy_ranges: bool = False,
    ):
        """
        - legacy_ranges=False: uniform draws cover every candidate, every
          duration and every sex bias
        - legacy_ranges=True : reproduce the historical draws which never
          pick the last candidate, Episodic or no-bias
        """
        self._ontology = ontology
        self._rng = rng
        self._discoverer = discoverer or SiteFindingDiscoverer(ontology)
        self.legacy_ranges = legacy_ranges

    def _pick(self, options: typing.Sequence):
        upper = len(options) - 1 if self.legacy_ranges else len(options)
        if upper <= 0:
            raise ValueError(f"Cannot draw from {len(options)} option(s) with legacy ranges")
        return options[self._rng.randrange(upper)]

    def build(self, diagnosis: Concept) -> tuple[typing.Optional[Truth], bool]:
        """
        Build a Truth for `diagnosis`. Returns (None, False) when no
        candidate findings can be discovered; the caller should skip it.
        """
        _require_diagnosis(self._ontology, diagnosis)
        candidates = sorted(self._discoverer.discover(diagnosis), key=lambda c: c.concept_id)
        if not candidates:
            logger.debug("No candidate findings for %s", diagnosis)
            return None, False

        count = 1 + self._rng.randrange(min(MAX_PROBLEMS, len(candidates)))
        problems = []
        for _ in range(count):
            concept = self._pick(candidates)
            duration = self._pick(DRAWABLE_DURATIONS)
            problems.append(Problem(concept, duration, self._rng.random()))

        mean_age = random_age(self._rng)
        sex_bias = self._pick(list(SexBias))
        cap = min(mean_age, MAX_STD_DEV_AGE)
        std_dev_age = self._rng.randrange(cap) if cap > 0 else 0

        truth = Truth(
            diagnosis=diagnosis,
            ancestors=tuple(self._ontology.fetch_ancestors(diagnosis)),
            problems=tuple(problems),
            sex_bias=sex_bias,
            mean_age=mean_age,
            std_dev_age=std_dev_age,
        )
        return truth, True


# -------------------------------------------------------
# Literal (hand-authored) truths for demonstration/seeding
# -------------------------------------------------------


@dataclass(frozen=True)
class ExplicitProblem:
    concept_id: int
    duration: Duration
    probability: float


@dataclass(frozen=True)
class ExplicitTruth:
    diagnosis_id: int
    problems: tuple[ExplicitProblem, ...]
    mean_age: int
    std_dev_age: int

    def resolve(self, ontology: OntologyGateway) -> Truth:
        """
        Look up every concept and return the Truth; raises
        `OntologyLookupError` if any identifier is unknown.
        """
        diagnosis = ontology.fetch_concept(self.diagnosis_id)
        _require_diagnosis(ontology, diagnosis)
        problems = tuple(
            Problem(ontology.fetch_concept(p.concept_id), p.duration, p.probability)
            for p in self.problems
        )
        return Truth(
            diagnosis=diagnosis,
            ancestors=tuple(ontology.fetch_ancestors(diagnosis)),
            problems=problems,
            sex_bias=SexBias.NO_BIAS,
            mean_age=self.mean_age,
            std_dev_age=self.std_dev_age,
        )


def load_explicit_truth(
    ontology: OntologyGateway,
    diagnosis_id: int,
    problems: typing.Iterable[tuple[int, Duration, float]],
    mean_age: int,
    std_dev_age: int,
) -> Truth:
    explicit = ExplicitTruth(
        diagnosis_id,
        tuple(ExplicitProblem(*p) for p in problems),
        mean_age,
        std_dev_age,
    )
    return explicit.resolve(ontology)


MYOCARDIAL_INFARCTION = ExplicitTruth(
    22298006,
    (
        ExplicitProblem(29857009, Duration.ACUTE, 0.95),  # chest pain
        ExplicitProblem(267036007, Duration.ACUTE, 0.70),  # breathlessness
        ExplicitProblem(415690000, Duration.ACUTE, 0.80),  # sweating
        ExplicitProblem(426555006, Duration.ACUTE, 0.55),  # pain in jaw
        ExplicitProblem(76388001, Duration.ACUTE, 0.60),  # ST elevation on ECG
    ),
    mean_age=60,
    std_dev_age=20,
)

SEED_TRUTHS = (MYOCARDIAL_INFARCTION,)


def myocardial_infarction_truth(ontology: OntologyGateway) -> Truth:
    return MYOCARDIAL_INFARCTION.resolve(ontology)
