"""Tests for DocumentationWorkflow."""

import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from conftest import http_error
from reposcribe.handlers.docs import (
    PHASES,
    STATE_COMPLETED,
    STATE_FAILED,
    STATE_IDLE,
    STATE_PHASE,
    STATE_REQUESTING,
    STEP_REQUESTING,
    DocumentationWorkflow,
)
from reposcribe.models import STATUS_COMPLETED, STATUS_ERROR, STATUS_GENERATING


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def workflow(repo, tokens, backend: MagicMock, events: list) -> DocumentationWorkflow:
    tokens.set("abc")
    backend.generate_doc.side_effect = lambda *a, **kw: events.append("request") or {
        "id": "doc_1",
        "content": "# widget\n",
        "generatedAt": "2024-03-01T12:00:00Z",
        "status": "completed",
    }
    return DocumentationWorkflow(
        repo,
        tokens,
        backend,
        phase_delay=0.0,
        sleep=lambda secs: events.append(("sleep", secs)),
        on_change=lambda wf: events.append((wf.state, wf.current_step)),
    )


class TestPhaseSequence:
    def test_starts_idle(self, workflow: DocumentationWorkflow) -> None:
        assert workflow.state == STATE_IDLE
        assert workflow.current_step == 0
        assert workflow.status == STATUS_GENERATING

    def test_four_phases_before_single_request(self, workflow, events) -> None:
        workflow.run()

        request_at = events.index("request")
        phase_steps = [e[1] for e in events[:request_at] if isinstance(e, tuple) and e[0] == STATE_PHASE]
        assert phase_steps == [1, 2, 3, 4]
        assert events.count("request") == 1

    def test_each_phase_waits_configured_delay(self, repo, tokens, backend) -> None:
        tokens.set("abc")
        backend.generate_doc.return_value = {"content": "x"}
        sleeps = []
        wf = DocumentationWorkflow(repo, tokens, backend, phase_delay=2.0, sleep=sleeps.append)

        wf.run()

        assert sleeps == [2.0] * len(PHASES)

    def test_request_issued_after_phases_even_if_instant(self, workflow, events) -> None:
        workflow.run()
        sleeps_before_request = [e for e in events[: events.index("request")] if isinstance(e, tuple) and e[0] == "sleep"]
        assert len(sleeps_before_request) == 4

    def test_requesting_state_precedes_request(self, workflow, events) -> None:
        workflow.run()
        assert events[events.index("request") - 1] == (STATE_REQUESTING, STEP_REQUESTING)


class TestCompletion:
    def test_success_stores_documentation(self, workflow, backend, repo) -> None:
        workflow.run()

        backend.generate_doc.assert_called_once_with("abc", repo.html_url, True)
        assert workflow.state == STATE_COMPLETED
        assert workflow.status == STATUS_COMPLETED
        assert workflow.error is None
        doc = workflow.documentation
        assert doc.content == "# widget\n"
        assert doc.repository == repo
        assert doc.generated_at == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert doc.status == STATUS_COMPLETED

    def test_missing_timestamp_defaults_to_now(self, repo, tokens, backend) -> None:
        tokens.set("abc")
        backend.generate_doc.return_value = {"content": "x"}
        wf = DocumentationWorkflow(repo, tokens, backend, phase_delay=0, sleep=lambda s: None)
        before = datetime.now(timezone.utc)

        wf.run()

        assert wf.documentation.generated_at >= before

    def test_token_reread_at_request_time(self, workflow, tokens, backend, repo) -> None:
        tokens.set("rotated")
        workflow.run()
        assert backend.generate_doc.call_args.args[0] == "rotated"

    def test_download_filename(self, workflow) -> None:
        assert workflow.download_filename() == "widget-README.md"


class TestFailure:
    def test_server_error(self, workflow, backend) -> None:
        backend.generate_doc.side_effect = http_error(500, {"error": "Failed to generate documentation"})

        workflow.run()

        assert workflow.state == STATE_FAILED
        assert workflow.status == STATUS_ERROR
        assert workflow.error
        assert "Failed to generate documentation" in workflow.error
        assert workflow.documentation is None

    def test_network_error(self, workflow, backend) -> None:
        backend.generate_doc.side_effect = requests.Timeout("slow")

        workflow.run()

        assert workflow.state == STATE_FAILED
        assert workflow.error.startswith("Network error")

    @pytest.mark.parametrize("body", [{}, {"content": 42}, ["not", "a", "dict"]])
    def test_malformed_body(self, workflow, backend, body) -> None:
        backend.generate_doc.side_effect = None
        backend.generate_doc.return_value = body

        workflow.run()

        assert workflow.state == STATE_FAILED
        assert workflow.documentation is None

    def test_no_token(self, workflow, tokens, backend) -> None:
        tokens.clear()

        workflow.run()

        backend.generate_doc.assert_not_called()
        assert workflow.state == STATE_FAILED
        assert "Not authenticated" in workflow.error


class TestRegenerate:
    def test_replaces_previous_result(self, workflow, backend) -> None:
        workflow.run()
        first = workflow.documentation

        backend.generate_doc.side_effect = None
        backend.generate_doc.return_value = {"content": "second"}
        assert workflow.regenerate() is True
        workflow.join(timeout=5)

        assert workflow.documentation is not first
        assert workflow.documentation.content == "second"
        assert backend.generate_doc.call_count == 2

    def test_after_failure(self, workflow, backend) -> None:
        backend.generate_doc.side_effect = http_error(502)
        workflow.run()
        assert workflow.state == STATE_FAILED

        backend.generate_doc.side_effect = None
        backend.generate_doc.return_value = {"content": "ok"}
        workflow.regenerate()
        workflow.join(timeout=5)

        assert workflow.state == STATE_COMPLETED
        assert workflow.error is None


class TestInFlight:
    def test_second_start_refused_while_running(self, repo, tokens, backend) -> None:
        tokens.set("abc")
        release = threading.Event()
        backend.generate_doc.side_effect = lambda *a, **kw: release.wait(5) and {"content": "x"}
        wf = DocumentationWorkflow(repo, tokens, backend, phase_delay=0, sleep=lambda s: None)

        assert wf.start() is True
        assert wf.start() is False
        assert wf.in_flight is True

        release.set()
        wf.join(timeout=5)
        assert wf.in_flight is False
        assert backend.generate_doc.call_count == 1
        assert wf.state == STATE_COMPLETED

    def test_abandoned_run_result_dropped(self, repo, tokens, backend) -> None:
        tokens.set("abc")
        release = threading.Event()
        backend.generate_doc.side_effect = lambda *a, **kw: release.wait(5) and {"content": "late"}
        wf = DocumentationWorkflow(repo, tokens, backend, phase_delay=0, sleep=lambda s: None)

        wf.start()
        wf.abandon()
        release.set()
        wf.join(timeout=5)

        assert wf.documentation is None
        assert wf.state != STATE_COMPLETED


class TestSnapshot:
    def test_shape(self, workflow) -> None:
        workflow.run()
        snap = workflow.snapshot()

        assert snap["status"] == STATUS_COMPLETED
        assert snap["repository"]["name"] == "widget"
        assert [p["title"] for p in snap["phases"]] == [p.title for p in PHASES]
        assert all(p["completed"] for p in snap["phases"])
        assert snap["documentation"]["content"] == "# widget\n"
        assert snap["in_flight"] is False
