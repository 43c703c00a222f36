"""Tests for the backfill coordinator."""

import pytest

from app.errors import MissingParameter
from app.models.job import ProcessingJob
from app.services.backfill import backfill

from conftest import add_messages, mark_normalized


def test_backfill_example_scenario(test_db):
    """Test 120 messages with 100 normalized enqueue exactly 20 jobs."""
    ids = add_messages(test_db, "org-1", 120)
    mark_normalized(test_db, ids[:100])

    result = backfill(test_db, "org-1", limit=1000)

    assert result == {
        "status": "backfill_enqueued",
        "total_messages": 120,
        "already_processed": 100,
        "enqueued": 20,
    }

    jobs = test_db.query(ProcessingJob).all()
    assert len(jobs) == 20
    assert {j.entity_id for j in jobs} == set(ids[100:])
    for job in jobs:
        assert job.status == "pending"
        assert job.job_type == "normalize_message"
        assert job.entity_type == "message"
        assert job.organization_id == "org-1"
        assert job.priority == 10


def test_backfill_counts_are_consistent(test_db):
    """Test enqueued + already_processed == total_messages."""
    ids = add_messages(test_db, "org-1", 37)
    mark_normalized(test_db, ids[::3])

    result = backfill(test_db, "org-1")

    assert result["enqueued"] + result["already_processed"] == result["total_messages"]


def test_backfill_respects_limit_newest_first(test_db):
    """Test candidate selection never exceeds the limit and prefers recent messages."""
    ids = add_messages(test_db, "org-1", 80)

    result = backfill(test_db, "org-1", limit=50)

    assert result["total_messages"] == 50
    enqueued = {j.entity_id for j in test_db.query(ProcessingJob).all()}
    assert enqueued == set(ids[30:])


def test_backfill_filters_candidates(test_db):
    """Test outgoing, empty and other organizations' messages are ignored."""
    add_messages(test_db, "org-1", 5)
    add_messages(test_db, "org-1", 3, start=100, direction="outgoing")
    add_messages(test_db, "org-1", 2, start=200, content=None)
    add_messages(test_db, "org-2", 4)

    result = backfill(test_db, "org-1")

    assert result["total_messages"] == 5
    assert result["enqueued"] == 5


def test_backfill_custom_priority(test_db):
    """Test the supplied priority is used for enqueued jobs."""
    add_messages(test_db, "org-1", 2)

    backfill(test_db, "org-1", priority=42)

    assert {j.priority for j in test_db.query(ProcessingJob).all()} == {42}


def test_backfill_missing_organization_has_no_side_effects(test_db):
    """Test a missing organization_id raises before any job store write."""
    add_messages(test_db, "org-1", 3)

    with pytest.raises(MissingParameter, match="organization_id required"):
        backfill(test_db, None)

    assert test_db.query(ProcessingJob).count() == 0


def test_backfill_after_processing_enqueues_nothing(test_db):
    """Test a second backfill sees the first call's entities as processed."""
    add_messages(test_db, "org-1", 10)

    first = backfill(test_db, "org-1")
    processed_ids = [j.entity_id for j in test_db.query(ProcessingJob).all()]
    mark_normalized(test_db, processed_ids)

    second = backfill(test_db, "org-1")

    assert second["already_processed"] == first["enqueued"]
    assert second["enqueued"] == 0


def test_repeated_backfill_does_not_duplicate_pending_jobs(test_db):
    """Test re-running before workers drain the queue reuses pending jobs."""
    add_messages(test_db, "org-1", 10)

    first = backfill(test_db, "org-1")
    second = backfill(test_db, "org-1")

    assert first["enqueued"] == second["enqueued"] == 10
    assert test_db.query(ProcessingJob).count() == 10
