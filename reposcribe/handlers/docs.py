# reposcribe/handlers/docs.py
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import requests

from ..errors import GenerationFailed
from ..models import STATUS_COMPLETED, STATUS_ERROR, STATUS_GENERATING, Documentation, Repository
from ..token_store import TokenStore
from .api import BackendClient, describe_http_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Phase:
    title: str
    description: str


PHASES = (
    Phase("Analyzing Repository", "Scanning repository structure and files"),
    Phase("Processing Code", "Understanding codebase architecture and dependencies"),
    Phase("Generating Content", "Creating comprehensive documentation with AI"),
    Phase("Formatting Output", "Applying proper markdown formatting and structure"),
)

# step 0 is Idle, 1..4 are the phases, 5 means the request has been sent
STEP_IDLE = 0
STEP_REQUESTING = len(PHASES) + 1

STATE_IDLE = "idle"
STATE_PHASE = "phase"
STATE_REQUESTING = "requesting"
STATE_COMPLETED = "completed"
STATE_FAILED = "failed"


def _parse_generated_at(value) -> datetime:
    if isinstance(value, str) and value:
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    return datetime.now(timezone.utc)


class DocumentationWorkflow:
    """Four timed phases for show, then exactly one generation request.

    `run()` drives the sequence on the calling thread; `start()` and
    `regenerate()` hand it to a worker thread so the progress page can poll
    `snapshot()`. Only one run is ever in flight; a run that has been
    superseded drops its result on the floor.
    """

    def __init__(
        self,
        repository: Repository,
        tokens: TokenStore,
        backend: BackendClient,
        phase_delay: float = 2.0,
        contains_api: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        on_change: Optional[Callable[["DocumentationWorkflow"], None]] = None,
    ):
        self.repository = repository
        self.tokens = tokens
        self.backend = backend
        self.phase_delay = phase_delay
        self.contains_api = contains_api
        self._sleep = sleep
        self._on_change = on_change

        self.state = STATE_IDLE
        self.current_step = STEP_IDLE
        self.documentation: Optional[Documentation] = None
        self.error: Optional[str] = None

        self._lock = threading.Lock()
        self._generation = 0
        self._in_flight = False
        self._worker: Optional[threading.Thread] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def phase(self) -> Optional[Phase]:
        if 1 <= self.current_step <= len(PHASES):
            return PHASES[self.current_step - 1]
        return None

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self)

    def _set(self, generation: int, **changes) -> bool:
        """Apply changes only if `generation` is still the live run."""
        with self._lock:
            if generation != self._generation:
                return False
            for k, v in changes.items():
                setattr(self, k, v)
        self._notify()
        return True

    # ---------- lifecycle ----------
    def _begin(self) -> Optional[int]:
        with self._lock:
            if self._in_flight:
                return None
            self._in_flight = True
            self._generation += 1
            self.state = STATE_IDLE
            self.current_step = STEP_IDLE
            self.documentation = None
            self.error = None
            return self._generation

    def run(self) -> None:
        generation = self._begin()
        if generation is None:
            logger.info("generation already in flight for %s", self.repository.full_name)
            return
        self._run(generation)

    def start(self) -> bool:
        generation = self._begin()
        if generation is None:
            return False
        self._worker = threading.Thread(
            target=self._run,
            args=(generation,),
            name=f"docgen-{self.repository.id}",
            daemon=True,
        )
        self._worker.start()
        return True

    def regenerate(self) -> bool:
        """Drop the current result and run the whole sequence again."""
        return self.start()

    def abandon(self) -> None:
        """Forget any pending run; its late result is discarded."""
        with self._lock:
            self._generation += 1
            self._in_flight = False

    def join(self, timeout: Optional[float] = None) -> None:
        if self._worker is not None:
            self._worker.join(timeout)

    def _run(self, generation: int) -> None:
        try:
            for step, phase in enumerate(PHASES, start=1):
                if not self._set(generation, state=STATE_PHASE, current_step=step):
                    return
                logger.debug("phase %d/%d: %s", step, len(PHASES), phase.title)
                self._sleep(self.phase_delay)

            if not self._set(generation, state=STATE_REQUESTING, current_step=STEP_REQUESTING):
                return
            try:
                doc = self._request()
            except GenerationFailed as e:
                logger.warning("generation failed for %s: %s", self.repository.full_name, e)
                self._set(generation, state=STATE_FAILED, error=str(e) or "Documentation generation failed")
                return
            self._set(generation, state=STATE_COMPLETED, documentation=doc)
            logger.info("documentation ready for %s", self.repository.full_name)
        finally:
            with self._lock:
                if generation == self._generation:
                    self._in_flight = False

    def _request(self) -> Documentation:
        token = self.tokens.get()
        if not token:
            raise GenerationFailed("Not authenticated: sign in again to generate documentation")
        try:
            data = self.backend.generate_doc(token, self.repository.html_url, self.contains_api)
        except requests.RequestException as e:
            raise GenerationFailed(describe_http_error(e)) from e
        except ValueError as e:
            raise GenerationFailed("Documentation service returned a malformed response") from e

        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise GenerationFailed("Documentation service returned a malformed response")
        return Documentation(
            repository=self.repository,
            content=data["content"],
            generated_at=_parse_generated_at(data.get("generatedAt")),
            status=STATUS_COMPLETED,
            id=str(data.get("id") or ""),
        )

    # ---------- output ----------
    @property
    def status(self) -> str:
        if self.state == STATE_COMPLETED:
            return STATUS_COMPLETED
        if self.state == STATE_FAILED:
            return STATUS_ERROR
        return STATUS_GENERATING

    def download_filename(self) -> str:
        return f"{self.repository.name}-README.md"

    def snapshot(self) -> dict:
        with self._lock:
            doc = self.documentation
            return {
                "repository": self.repository.to_dict(),
                "state": self.state,
                "status": self.status,
                "current_step": self.current_step,
                "phases": [
                    {
                        "title": p.title,
                        "description": p.description,
                        "active": self.current_step == i,
                        "completed": self.current_step > i,
                    }
                    for i, p in enumerate(PHASES, start=1)
                ],
                "in_flight": self._in_flight,
                "error": self.error,
                "documentation": doc.to_dict() if doc else None,
            }
