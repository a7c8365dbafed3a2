"""
Prevalence weighting.

Converts a prevalence estimate per diagnosis into the number of records to
synthesize for it. Estimates come from an external table; diagnoses the
table does not cover are imputed from their nearest covered ancestor.
"""

from __future__ import annotations

import logging
import math
import pathlib
import typing

import pandas as pd

from .concept import Concept
from .ontology import OntologyGateway

logger = logging.getLogger(__name__)

MIN_RECORDS = 5
PREVALENCE_RESOLUTION = 10000

# Columns that need renaming → canonical names
RENAME_MAP = {
    "conceptid": "concept_id",
    "id": "concept_id",
    "sctid": "concept_id",
    "frequency": "prevalence",
}
REQUIRED_COLUMNS = {"concept_id", "prevalence"}


def replication_count(prevalence: float, scale: int) -> int:
    """
    Number of records for a diagnosis: 5 + floor(prevalence * 10000) * scale.
    Always at least 5 and monotonic in prevalence.
    """
    if scale < 0:
        raise ValueError(f"scale must not be negative, got {scale}")
    if not 0.0 <= prevalence <= 1.0:
        raise ValueError(f"prevalence must lie in [0, 1], got {prevalence!r}")
    return MIN_RECORDS + math.floor(prevalence * PREVALENCE_RESOLUTION) * scale


def load_prevalence_table(path: typing.Union[str, pathlib.Path]) -> dict[int, float]:
    """
    Read a CSV or Excel table of prevalence estimates:
      - headers normalized to snake_case lowercase
      - renames from RENAME_MAP applied
      - `concept_id` and `prevalence` columns required
    """
    path = pathlib.Path(path)
    if path.suffix.lower() in (".xlsx", ".xls"):
        df = pd.read_excel(path, header=0, engine="openpyxl")
    else:
        df = pd.read_csv(path, header=0)

    df.columns = (
        df.columns.str.strip()
        .str.replace(r"\s*\(.*?\)", "", regex=True)  # drop any "(…)"
        .str.replace(r"\s+", "_", regex=True)
        .str.lower()
    )
    df = df.rename(
        columns={orig: target for orig, target in RENAME_MAP.items() if orig in df.columns}
    )
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"{path}: missing required column(s) {sorted(missing)}")

    df = df.dropna(subset=["concept_id", "prevalence"])
    out_of_range = df[(df["prevalence"] < 0) | (df["prevalence"] > 1)]
    if not out_of_range.empty:
        raise ValueError(
            f"{path}: prevalence outside [0, 1] for concept(s) "
            f"{out_of_range['concept_id'].astype(int).tolist()}"
        )
    table = {
        int(concept_id): float(prevalence)
        for concept_id, prevalence in zip(df["concept_id"], df["prevalence"])
    }
    logger.debug("Loaded %d prevalence estimates from %s", len(table), path)
    return table


class PrevalenceEstimator:
    def __init__(self, ontology: OntologyGateway, known: typing.Optional[typing.Mapping[int, float]] = None):
        self._ontology = ontology
        self._known = dict(known or {})
        self._imputed: dict[int, float] = {}

    def estimate(self, diagnosis: Concept) -> float:
        """
        Known prevalence if tabulated; otherwise the nearest tabulated
        ancestor's prevalence shared evenly across its descendants; else 0.
        """
        if diagnosis.concept_id in self._known:
            return self._known[diagnosis.concept_id]
        if diagnosis.concept_id in self._imputed:
            return self._imputed[diagnosis.concept_id]

        value = 0.0
        for ancestor in self._ontology.fetch_ancestors(diagnosis):
            if ancestor.concept_id in self._known:
                descendants = self._ontology.fetch_recursive_descendants(ancestor)
                value = self._known[ancestor.concept_id] / max(len(descendants), 1)
                logger.debug("Imputed prevalence %g for %s from %s", value, diagnosis, ancestor)
                break
        self._imputed[diagnosis.concept_id] = value
        return value

    def replication_count(self, diagnosis: Concept, scale: int) -> int:
        return replication_count(self.estimate(diagnosis), scale)
