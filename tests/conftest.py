import os
import random

import pytest

from vignette.ontology import SnapshotOntology, load_snapshot


@pytest.fixture(scope="session")
def fpath_test_dir() -> str:
    """
    Path to `tests/data/` folder.
    """
    return os.path.join(os.path.dirname(__file__), "data")


@pytest.fixture(scope="session")
def fpath_snapshot(fpath_test_dir: str) -> str:
    return os.path.join(fpath_test_dir, "mini_snomed.json")


@pytest.fixture(scope="session")
def ontology(fpath_snapshot: str) -> SnapshotOntology:
    """
    A small SNOMED-shaped snapshot: a handful of thoracic, abdominal and
    skin disorders with findings attached to their body structures.
    """
    return load_snapshot(fpath_snapshot)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)
