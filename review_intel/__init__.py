"""
App Review Intelligence.

Client core for an app-review-intelligence dashboard: drives backend
analysis jobs for App Store apps and reconciles their loosely-typed
results into canonical records, using LangGraph, httpx and pydantic.
"""

__version__ = "1.0.0"
__author__ = "App Review Intelligence Team"

# Lazy imports to avoid circular dependencies
def get_controller():
    """Get the JobController class (lazy import)."""
    from review_intel.pipeline.job_controller import JobController
    return JobController

__all__ = ["get_controller", "__version__"]
