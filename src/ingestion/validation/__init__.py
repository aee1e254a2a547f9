from src.ingestion.validation.classifier import LLMContentClassifier
from src.ingestion.validation.validator import SAFETY_REJECTION_REASON, ContentValidator

__all__ = ["ContentValidator", "LLMContentClassifier", "SAFETY_REJECTION_REASON"]
