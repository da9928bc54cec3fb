from fieldreport.enrichment.base import BaseEnrichmentClient
from fieldreport.enrichment.enricher import Enricher, NameplateFields
from fieldreport.enrichment.factory import EnrichmentFactory

__all__ = ["BaseEnrichmentClient", "Enricher", "EnrichmentFactory", "NameplateFields"]
