import pytest
from pydantic import ValidationError

from review_intel.models.schemas import (
    AnalysisJob,
    AppMetadata,
    CompetitiveAnalysis,
    CompetitorSummary,
    FeatureMatrixRow,
    Issue,
    JobStatus,
    JobStep,
    QueryHistoryEntry,
    Roadmap,
    RoadmapItem,
    SWOTAnalysis,
    Timeline,
)


def test_enum_defaults_are_plain_values():
    job = AnalysisJob(app_id="123")
    assert job.status == "pending"
    assert isinstance(job.status, str)
    assert JobStep(name="Fetch").status == "pending"
    assert Timeline().view == "version"


def test_job_terminal_states():
    assert not AnalysisJob(app_id="1", status="analyzing").is_terminal
    assert AnalysisJob(app_id="1", status=JobStatus.READY).is_terminal
    assert AnalysisJob(app_id="1", status="failed").is_terminal


def test_job_progress_bounds():
    with pytest.raises(ValidationError):
        AnalysisJob(app_id="1", progress=101)


def test_rating_bounds_on_metadata():
    assert AppMetadata(rating=5.0).rating == 5.0
    with pytest.raises(ValidationError):
        AppMetadata(rating=5.5)


def test_issue_resolution():
    assert Issue(status="Resolved").is_resolved
    assert not Issue(status="active").is_resolved
    assert not Issue().is_resolved


def test_competitive_analysis_has_data():
    assert not CompetitiveAnalysis().has_data
    assert CompetitiveAnalysis(swot=SWOTAnalysis(threats=["Price war"])).has_data
    assert CompetitiveAnalysis(competitors=[CompetitorSummary(name="Bear")]).has_data
    assert CompetitiveAnalysis(feature_matrix=[FeatureMatrixRow(feature="Sync")]).has_data


def test_roadmap_by_priority_defaults_to_low():
    roadmap = Roadmap(recommendations=[
        RoadmapItem(title="A", priority="HIGH"),
        RoadmapItem(title="B", priority="urgent"),
        RoadmapItem(title="C"),
        RoadmapItem(title="D", priority="medium"),
    ])
    groups = roadmap.by_priority()
    assert [i.title for i in groups["high"]] == ["A"]
    assert [i.title for i in groups["medium"]] == ["D"]
    assert [i.title for i in groups["low"]] == ["B", "C"]


def test_json_round_trip():
    entry = QueryHistoryEntry(query="Why?", answer="Because")
    restored = QueryHistoryEntry.from_json(entry.to_json())
    assert restored == entry
    assert entry.to_dict()["query"] == "Why?"


def test_canonical_records_strip_whitespace():
    assert CompetitorSummary(name="  Bear  ").name == "Bear"
