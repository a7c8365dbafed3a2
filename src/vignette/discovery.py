"""
Site-based finding discovery.

Diagnoses rarely declare their symptoms in the ontology, so plausible
findings are manufactured indirectly: generalize each finding site of the
diagnosis to a coarse body region, then collect every non-disease concept
whose finding site lies anywhere inside that region.
"""

import logging
import typing

from .concept import Concept, SCT_DISEASE, SCT_FINDING_SITE, SCT_THORACIC_STRUCTURE
from .ontology import OntologyGateway

logger = logging.getLogger(__name__)


class SiteFindingDiscoverer:
    def __init__(
        self,
        ontology: OntologyGateway,
        reference_region_id: int = SCT_THORACIC_STRUCTURE,
        disease_id: int = SCT_DISEASE,
    ):
        """
        `reference_region_id` names one high-level body region; it and its
        siblings form the set of generic sites.
        """
        self._ontology = ontology
        self._reference_region_id = reference_region_id
        self._disease_id = disease_id
        self._generic_sites: typing.Optional[dict[int, Concept]] = None

    @property
    def generic_sites(self) -> dict[int, Concept]:
        # computed once, on first use
        if self._generic_sites is None:
            reference = self._ontology.fetch_concept(self._reference_region_id)
            regions = self._ontology.fetch_siblings(reference) + [reference]
            self._generic_sites = {region.concept_id: region for region in regions}
            logger.debug("Using %d generic sites", len(self._generic_sites))
        return self._generic_sites

    def generalize_sites(self, diagnosis: Concept) -> list[Concept]:
        """
        Finding sites of `diagnosis`, each mapped onto its generic region.
        Sites outside every generic region are dropped.
        """
        sites = self._ontology.fetch_related_parents(diagnosis, SCT_FINDING_SITE)
        generic: dict[int, Concept] = {}
        for site in sites:
            region, ok = self._ontology.generalize_to_one_of(site, self.generic_sites)
            if ok:
                generic[region.concept_id] = region
            else:
                logger.debug("No generic site for %s (%s)", site, diagnosis)
        return list(generic.values())

    def discover(self, diagnosis: Concept) -> set[Concept]:
        """
        Candidate findings for `diagnosis`, deduplicated by concept id.
        An empty set means the diagnosis has no usable finding site.
        Only descendants of a generic region are searched, so findings
        sited on the region itself (e.g. chest pain on the thorax) are
        never candidates.
        """
        candidates: dict[int, Concept] = {}
        for region in self.generalize_sites(diagnosis):
            for structure in self._ontology.fetch_recursive_descendants(region):
                for finding in self._ontology.fetch_related_children(structure, SCT_FINDING_SITE):
                    if not self._ontology.is_descendant_of(finding, self._disease_id):
                        candidates[finding.concept_id] = finding
        logger.debug("Discovered %d candidate findings for %s", len(candidates), diagnosis)
        return set(candidates.values())
