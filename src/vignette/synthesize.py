"""
Question synthesis: turn one Truth into one concrete Record.
"""

import random

from .concept import Concept
from .ontology import OntologyGateway
from .record import ClinicalFinding, Record
from .truth import Problem, Truth, random_age


def to_finding(problem: Problem, ontology: OntologyGateway) -> ClinicalFinding:
    return ClinicalFinding(
        concept=problem.concept,
        parents=tuple(ontology.fetch_ancestors(problem.concept)),
        duration=problem.duration,
    )


def sample_age(truth: Truth, rng: random.Random) -> int:
    """
    Normal draw around the Truth's mean age, clamped at zero. Falls back to
    the general population model when mean or spread is not positive.
    """
    if truth.mean_age > 0 and truth.std_dev_age > 0:
        return max(int(rng.gauss(truth.mean_age, truth.std_dev_age)), 0)
    return random_age(rng)


def sample(truth: Truth, ontology: OntologyGateway, rng: random.Random) -> Record:
    """
    Create a record by including each problem independently with its own
    probability. Findings keep the Truth's problem order.
    """
    findings = [
        to_finding(problem, ontology)
        for problem in truth.problems
        if rng.random() < problem.probability
    ]
    age = sample_age(truth, rng)
    sex = truth.sex_bias.random_sex(rng)
    answer: Concept = truth.diagnosis
    parents = truth.ancestors or tuple(ontology.fetch_ancestors(answer))
    return Record(age=age, sex=sex, findings=tuple(findings), answer=answer, parents=parents)
