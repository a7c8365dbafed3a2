"""
Tests for the snapshot-backed ontology gateway.
"""

import gzip
import json
import shutil
from concurrent.futures import ThreadPoolExecutor

import pytest

from vignette.concept import SCT_DISEASE, SCT_FINDING_SITE
from vignette.ontology import OntologyLookupError, SnapshotOntology, load_snapshot


def ids(concepts):
    return [c.concept_id for c in concepts]


def test_fetch_concept(ontology: SnapshotOntology):
    mi = ontology.fetch_concept(22298006)
    assert mi.fully_specified_name == "Myocardial infarction (disorder)"
    assert ontology.version == "mini-2024-01-31"


def test_unknown_concept_raises(ontology: SnapshotOntology):
    with pytest.raises(OntologyLookupError):
        ontology.fetch_concept(1)


def test_ancestors_are_nearest_first_and_memoised(ontology: SnapshotOntology):
    mi = ontology.fetch_concept(22298006)
    first = ontology.fetch_ancestors(mi)
    assert ids(first) == [64572001, 404684003, 138875005]
    assert ontology.fetch_ancestors(mi) is first


def test_recursive_descendants(ontology: SnapshotOntology):
    thorax = ontology.fetch_concept(51185008)
    assert ids(ontology.fetch_recursive_descendants(thorax)) == [39607008, 80891009]
    heart = ontology.fetch_concept(80891009)
    assert ontology.fetch_recursive_descendants(heart) == []


def test_siblings_exclude_self(ontology: SnapshotOntology):
    thorax = ontology.fetch_concept(51185008)
    assert ids(ontology.fetch_siblings(thorax)) == [69536005, 818983003]


def test_related_parents_and_children(ontology: SnapshotOntology):
    mi = ontology.fetch_concept(22298006)
    assert ids(ontology.fetch_related_parents(mi, SCT_FINDING_SITE)) == [80891009]
    heart = ontology.fetch_concept(80891009)
    assert ids(ontology.fetch_related_children(heart, SCT_FINDING_SITE)) == [
        3424008,
        22298006,
        76388001,
        84114007,
    ]
    assert ontology.fetch_related_children(heart, 116676008) == []


def test_is_descendant_of_includes_self(ontology: SnapshotOntology):
    mi = ontology.fetch_concept(22298006)
    chest_pain = ontology.fetch_concept(29857009)
    assert ontology.is_descendant_of(mi, SCT_DISEASE)
    assert ontology.is_descendant_of(mi, 22298006)
    assert not ontology.is_descendant_of(chest_pain, SCT_DISEASE)


def test_generalize_to_one_of(ontology: SnapshotOntology):
    regions = {c: ontology.fetch_concept(c) for c in (51185008, 818983003, 69536005)}
    heart = ontology.fetch_concept(80891009)
    region, ok = ontology.generalize_to_one_of(heart, regions)
    assert ok and region.concept_id == 51185008

    thorax = ontology.fetch_concept(51185008)
    assert ontology.generalize_to_one_of(thorax, regions) == (thorax, True)

    skin = ontology.fetch_concept(39937001)
    assert ontology.generalize_to_one_of(skin, regions) == (None, False)


def test_relationship_with_unknown_concept_raises(ontology: SnapshotOntology):
    concepts = [ontology.fetch_concept(22298006)]
    with pytest.raises(OntologyLookupError):
        SnapshotOntology(concepts, is_a=[], relationships=[(22298006, SCT_FINDING_SITE, 80891009)])


def test_load_gzipped_snapshot(tmp_path, fpath_snapshot: str):
    target = tmp_path / "mini_snomed.json.gz"
    with open(fpath_snapshot, "rb") as src, gzip.open(target, "wb") as dst:
        shutil.copyfileobj(src, dst)

    loaded = load_snapshot(target)
    with open(fpath_snapshot, encoding="utf-8") as fh:
        expected = len(json.load(fh)["concepts"])
    assert loaded.fetch_concept(22298006).concept_id == 22298006
    assert len(loaded.fetch_recursive_descendants(loaded.fetch_concept(138875005))) == expected - 1


def test_concurrent_ancestor_lookups_agree(fpath_snapshot: str):
    fresh = load_snapshot(fpath_snapshot)
    mi = fresh.fetch_concept(22298006)
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: ids(fresh.fetch_ancestors(mi)), range(64)))
    assert all(r == [64572001, 404684003, 138875005] for r in results)
