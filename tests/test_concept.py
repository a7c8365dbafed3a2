import random

import pytest
from vignette.concept import Concept, Duration, Sex, SexBias


def test_duration_from_label():
    """Known labels map to the correct enum, ignoring case and padding."""
    assert Duration.from_label("Acute") == Duration.ACUTE
    assert Duration.from_label(" subacute ") == Duration.SUBACUTE
    assert Duration.EPISODIC.label == "Episodic"


def test_duration_invalid_label_raises():
    with pytest.raises(ValueError):
        Duration.from_label("Sometimes")


def test_sex_labels():
    assert Sex.MALE.label == "male"
    assert Sex.from_label("Female") == Sex.FEMALE
    with pytest.raises(ValueError):
        Sex.from_label("unknown")


@pytest.mark.parametrize("bias, expected", [(SexBias.MEN_ONLY, Sex.MALE), (SexBias.FEMALE_ONLY, Sex.FEMALE)])
def test_biased_sex_is_forced(bias, expected):
    rng = random.Random(1)
    assert {bias.random_sex(rng) for _ in range(100)} == {expected}


def test_unbiased_sex_flips_a_coin():
    rng = random.Random(1)
    drawn = [SexBias.NO_BIAS.random_sex(rng) for _ in range(1000)]
    assert 400 < drawn.count(Sex.MALE) < 600


def test_concept_renders_name():
    assert str(Concept(29857009, "Chest pain (finding)")) == "Chest pain (finding)"
