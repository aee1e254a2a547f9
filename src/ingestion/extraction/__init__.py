from src.ingestion.extraction.client import ExtractionJobClient, FirecrawlExtractService, map_results_to_urls

__all__ = ["ExtractionJobClient", "FirecrawlExtractService", "map_results_to_urls"]
