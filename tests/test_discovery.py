import pytest

from vignette.discovery import SiteFindingDiscoverer
from vignette.ontology import SnapshotOntology


class TestSiteFindingDiscoverer:
    @pytest.fixture(scope="class")
    def discoverer(self, ontology: SnapshotOntology) -> SiteFindingDiscoverer:
        return SiteFindingDiscoverer(ontology)

    def test_generic_sites_are_reference_region_and_siblings(self, discoverer: SiteFindingDiscoverer):
        assert set(discoverer.generic_sites) == {51185008, 818983003, 69536005}

    def test_cardiac_diagnosis_finds_thoracic_findings(self, ontology, discoverer):
        """Heart generalizes to thorax; findings of heart and lung qualify, diseases do not."""
        mi = ontology.fetch_concept(22298006)
        found = {c.concept_id for c in discoverer.discover(mi)}
        assert found == {3424008, 76388001, 267036007}
        # chest pain is sited on the thoracic structure itself
        assert 29857009 not in found

    def test_findings_sited_on_the_region_itself_are_not_descendants(self, ontology, discoverer):
        ulcer = ontology.fetch_concept(13200003)
        found = {c.concept_id for c in discoverer.discover(ulcer)}
        # abdominal pain sits on the abdomen itself, heartburn on the stomach
        assert found == {16331000}

    @pytest.mark.parametrize(
        "diagnosis_id",
        [
            73211009,  # no finding site at all
            24079001,  # skin generalizes to no generic site
        ],
    )
    def test_unusable_diagnosis_yields_nothing(self, ontology, discoverer, diagnosis_id):
        assert discoverer.discover(ontology.fetch_concept(diagnosis_id)) == set()

    def test_discovery_is_deterministic(self, ontology, discoverer):
        pneumonia = ontology.fetch_concept(233604007)
        assert discoverer.discover(pneumonia) == discoverer.discover(pneumonia)
