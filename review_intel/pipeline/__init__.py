"""Pipeline module for the App Review Intelligence client."""

from review_intel.pipeline.job_controller import (
    CancellationToken,
    JobController,
    PollScheduler,
    map_job_status,
)
from review_intel.pipeline.competitive import (
    CompetitivePipeline,
    CompetitiveStateDict,
    assemble_competitive_analysis,
)
from review_intel.pipeline.views import ReviewViews

__all__ = [
    "CancellationToken",
    "JobController",
    "PollScheduler",
    "map_job_status",
    "CompetitivePipeline",
    "CompetitiveStateDict",
    "assemble_competitive_analysis",
    "ReviewViews",
]
