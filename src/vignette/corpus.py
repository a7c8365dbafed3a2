"""
Corpus driver.

Orchestrates truth construction and sampling across a batch of diagnoses:
  1) seed truths (myocardial infarction) first
  2) one discovered truth per selected diagnosis, in selection order,
     skipping diagnoses with no discoverable findings
  3) each truth sampled `replication_count` times, appended in order

Lookup failures follow the `on_error` policy: "abort" re-raises, "skip"
records a warning in the notepad and moves on.
"""

from __future__ import annotations

import logging
import random
import typing

from stairval.notepad import Notepad

from .concept import Concept, SCT_DIAGNOSIS_ROOT
from .ontology import OntologyGateway, OntologyLookupError
from .prevalence import PrevalenceEstimator
from .record import Record
from .synthesize import sample
from .truth import SEED_TRUTHS, ExplicitTruth, Truth, TruthBuilder

logger = logging.getLogger(__name__)

ON_ERROR_POLICIES = ("abort", "skip")


class CorpusDriver:
    def __init__(
        self,
        ontology: OntologyGateway,
        rng: random.Random,
        prevalence: typing.Optional[PrevalenceEstimator] = None,
        scale: int = 1,
        on_error: str = "abort",
        legacy_ranges: bool = False,
        seed_truths: typing.Sequence[ExplicitTruth] = SEED_TRUTHS,
    ):
        if on_error not in ON_ERROR_POLICIES:
            raise ValueError(f"on_error must be one of {ON_ERROR_POLICIES}, got {on_error!r}")
        self._ontology = ontology
        self._rng = rng
        self._prevalence = prevalence or PrevalenceEstimator(ontology)
        self._builder = TruthBuilder(ontology, rng, legacy_ranges=legacy_ranges)
        self._seed_truths = seed_truths
        self.scale = scale
        self.on_error = on_error

    def select_diagnoses(self, limit: int) -> list[Concept]:
        """
        All diagnoses when `limit` is negative, else `limit` diagnoses drawn
        uniformly with replacement.
        """
        root = self._ontology.fetch_concept(SCT_DIAGNOSIS_ROOT)
        diagnoses = self._ontology.fetch_recursive_descendants(root)
        if limit < 0 or not diagnoses:
            return diagnoses
        return [diagnoses[self._rng.randrange(len(diagnoses))] for _ in range(limit)]

    def _failed(self, what: str, error: Exception, notepad: Notepad) -> None:
        if self.on_error == "abort":
            notepad.add_error(f"{what}: {error}")
            raise error
        logger.warning("Skipping %s: %s", what, error)
        notepad.add_warning(f"Skipped {what}: {error}")

    def build_truths(self, diagnoses: typing.Iterable[Concept], notepad: Notepad) -> list[Truth]:
        truths: list[Truth] = []
        for explicit in self._seed_truths:
            try:
                truths.append(explicit.resolve(self._ontology))
            except OntologyLookupError as e:
                self._failed(f"seed truth {explicit.diagnosis_id}", e, notepad)

        skipped = 0
        for diagnosis in diagnoses:
            try:
                truth, found = self._builder.build(diagnosis)
            except OntologyLookupError as e:
                self._failed(f"diagnosis {diagnosis.concept_id}", e, notepad)
                continue
            if found:
                truths.append(truth)
            else:
                skipped += 1
        logger.info("Built %d truths, %d diagnoses had no findings", len(truths), skipped)
        return truths

    def sample_truths(self, truths: typing.Iterable[Truth]) -> list[Record]:
        records: list[Record] = []
        for truth in truths:
            count = self._prevalence.replication_count(truth.diagnosis, self.scale)
            logger.debug("Sampling %s %d times", truth.diagnosis, count)
            records.extend(sample(truth, self._ontology, self._rng) for _ in range(count))
        return records

    def generate(self, limit: int, notepad: Notepad) -> list[Record]:
        diagnoses = self.select_diagnoses(limit)
        truths = self.build_truths(diagnoses, notepad)
        return self.sample_truths(truths)
