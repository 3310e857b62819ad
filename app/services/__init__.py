from app.services.auth import Identity, can_modify, can_view
from app.services.extraction import ExtractionError, extract_text
from app.services.quiz_generation import QuizGenerationService

__all__ = [
    "ExtractionError",
    "Identity",
    "QuizGenerationService",
    "can_modify",
    "can_view",
    "extract_text",
]
