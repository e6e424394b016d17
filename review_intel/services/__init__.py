"""
Services package for the App Review Intelligence client.

Services:
    - ReviewIntelClient: Async HTTP boundary to the review-analysis backend
    - ReviewBackend: Protocol the controller and pipelines depend on
    - ValidationService: User input validation and cleaning
"""

from review_intel.services.api_client import ReviewBackend, ReviewIntelClient
from review_intel.services.validation_service import ValidationService

__all__ = [
    "ReviewBackend",
    "ReviewIntelClient",
    "ValidationService",
]
