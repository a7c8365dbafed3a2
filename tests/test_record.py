import json

import pytest

from vignette.concept import Duration, Sex
from vignette.record import ClinicalFinding, Record, dumps, loads


@pytest.fixture
def record(ontology) -> Record:
    chest_pain = ontology.fetch_concept(29857009)
    dyspnea = ontology.fetch_concept(267036007)
    mi = ontology.fetch_concept(22298006)
    return Record(
        age=61,
        sex=Sex.MALE,
        findings=(
            ClinicalFinding(chest_pain, tuple(ontology.fetch_ancestors(chest_pain)), Duration.ACUTE),
            ClinicalFinding(dyspnea, tuple(ontology.fetch_ancestors(dyspnea)), Duration.EPISODIC),
        ),
        answer=mi,
        parents=tuple(ontology.fetch_ancestors(mi)),
    )


def test_exchange_shape(record: Record):
    data = json.loads(dumps([record]))
    assert isinstance(data, list) and len(data) == 1
    item = data[0]
    assert item["Age"] == 61
    assert item["Sex"] == "male"
    assert item["Findings"][0]["Duration"] == "Acute"
    assert item["Findings"][0]["Concept"]["ConceptID"] == 29857009
    assert item["Answer"] == {
        "ConceptID": 22298006,
        "FullySpecifiedName": "Myocardial infarction (disorder)",
        "Parents": [64572001, 404684003, 138875005],
    }


def test_batch_is_pretty_printed(record: Record):
    assert dumps([record]).startswith('[\n  {\n    "Age": 61')


def test_round_trip(record: Record, ontology):
    (parsed,) = loads(dumps([record]), ontology)
    assert parsed.age == record.age
    assert parsed.sex == record.sex
    assert [f.duration for f in parsed.findings] == [Duration.ACUTE, Duration.EPISODIC]
    assert [f.concept.concept_id for f in parsed.findings] == [29857009, 267036007]
    assert parsed.answer.concept_id == record.answer.concept_id


def test_record_renders_scenario(record: Record):
    assert str(record) == (
        "[Acute Chest pain (finding), Episodic Dyspnea (finding)] --> Myocardial infarction (disorder)"
    )


def test_negative_age_is_rejected(record: Record):
    with pytest.raises(ValueError):
        Record(-1, record.sex, (), record.answer, record.parents)
