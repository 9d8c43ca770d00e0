"""Tests for the queue worker."""

import threading

from sqlalchemy.exc import OperationalError

from report_engine.models.report import STATUS_FAILED, STATUS_PENDING, STATUS_PROCESSING, STATUS_PUBLISHED
from report_engine.worker import QueueWorker, build_worker


def test_drains_queue(engine, orchestrator, provider, complete_inputs, store):
    queued = orchestrator.enqueue_generation("42", "career_transitions")
    orchestrator.enqueue_generation("42", "summary")

    summary = build_worker(engine).process()

    assert (summary.processed, summary.failed, summary.skipped, summary.remaining) == (2, 0, 0, 0)
    assert store.load(queued.record_id).status == STATUS_PUBLISHED
    assert provider.calls == 2


def test_limit(engine, orchestrator, complete_inputs):
    orchestrator.enqueue_generation("42", "career_transitions")
    orchestrator.enqueue_generation("42", "summary")

    summary = build_worker(engine).process(limit=1)

    assert summary.processed == 1
    assert summary.remaining == 1


def test_report_error_deletes_job(engine, orchestrator, provider, complete_inputs, store):
    queued = orchestrator.enqueue_generation("42", "career_transitions")
    provider.responses = ["not json"]

    summary = build_worker(engine).process()

    assert summary.failed == 1
    assert summary.remaining == 0
    assert store.load(queued.record_id).status == STATUS_FAILED


def test_unexpected_crash_releases_job(engine, orchestrator, complete_inputs):
    orchestrator.enqueue_generation("42", "career_transitions")

    def crash(job):
        raise RuntimeError("worker lost its database connection")

    orchestrator.process_queued = crash
    summary = build_worker(engine).process()

    assert summary.failed == 1
    assert summary.remaining == 1
    assert engine.queue.count() == 1


def test_store_failure_releases_job(engine, orchestrator, complete_inputs, store, monkeypatch):
    queued = orchestrator.enqueue_generation("42", "career_transitions")

    def locked(*args, **kwargs):
        raise OperationalError("SELECT report_records", {}, Exception("database is locked"))

    monkeypatch.setattr(orchestrator.store, "load", locked)
    summary = build_worker(engine).process()

    assert summary.failed == 1
    assert summary.remaining == 1
    monkeypatch.undo()
    assert store.load(queued.record_id).status == STATUS_PENDING


def test_orphan_job_is_skipped(engine, orchestrator, provider, complete_inputs, store):
    orchestrator.enqueue_generation("42", "career_transitions")
    store.delete_for_subject("42")

    summary = build_worker(engine).process()

    assert summary.skipped == 1
    assert summary.remaining == 0
    assert provider.calls == 0


def test_stale_processing_records_fail(engine, orchestrator, complete_inputs, store):
    queued = orchestrator.enqueue_generation("42", "career_transitions")
    store.transition(queued.record_id, STATUS_PROCESSING)

    worker = QueueWorker(orchestrator, engine.queue, store, stale_after_seconds=-1)
    summary = worker.process()

    assert store.load(queued.record_id).status == STATUS_FAILED
    assert summary.skipped == 1


def test_run_stops_on_event(engine, orchestrator, complete_inputs, store):
    queued = orchestrator.enqueue_generation("42", "career_transitions")
    stop_event = threading.Event()
    worker = QueueWorker(orchestrator, engine.queue, store, poll_interval=0.01)

    original_process = worker.process

    def process_once(limit=None):
        summary = original_process(limit)
        stop_event.set()
        return summary

    worker.process = process_once
    worker.run(stop_event=stop_event)

    assert store.load(queued.record_id).status == STATUS_PUBLISHED
