"""Tests for source hashing."""

from report_engine.schemas.report import Submission
from report_engine.services.hashing import compute_source_hash


def test_hash_is_hex_sha256():
    digest = compute_source_hash({"task_analysis": {"role": "engineer"}})
    assert len(digest) == 64
    int(digest, 16)


def test_key_order_does_not_matter():
    first = compute_source_hash(
        {"task_analysis": {"role": "engineer", "years": 3}, "skills_gap": {"current": ["python"]}}
    )
    second = compute_source_hash(
        {"skills_gap": {"current": ["python"]}, "task_analysis": {"years": 3, "role": "engineer"}}
    )
    assert first == second


def test_any_value_change_changes_hash():
    base = {"task_analysis": {"role": "engineer"}, "skills_gap": {"current": ["python"]}}
    changed = {"task_analysis": {"role": "engineer"}, "skills_gap": {"current": ["python", "sql"]}}
    assert compute_source_hash(base) != compute_source_hash(changed)


def test_optional_input_changes_hash():
    base = {"task_analysis": {"role": "engineer"}}
    with_optional = {"task_analysis": {"role": "engineer"}, "confidence": {"confidence_level": 3}}
    assert compute_source_hash(base) != compute_source_hash(with_optional)


def test_submission_ids_not_hashed():
    first = compute_source_hash({"task_analysis": Submission(submission_id="1", data={"role": "engineer"})})
    second = compute_source_hash({"task_analysis": Submission(submission_id="99", data={"role": "engineer"})})
    assert first == second
    assert first == compute_source_hash({"task_analysis": {"role": "engineer"}})
