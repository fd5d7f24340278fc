# reposcribe/state.py
from dataclasses import dataclass
from typing import Optional

from .config import Config
from .handlers.api import BackendClient
from .handlers.auth import SessionManager
from .handlers.docs import DocumentationWorkflow
from .handlers.repositories import RepositoryDirectory
from .models import Repository
from .token_store import TokenStore


@dataclass
class AppState:
    config: Config
    tokens: TokenStore
    backend: BackendClient
    sessions: SessionManager
    directory: RepositoryDirectory
    repositories: Optional[list[Repository]] = None
    repositories_error: Optional[str] = None
    workflow: Optional[DocumentationWorkflow] = None

    @classmethod
    def from_config(cls, config: Config, backend: Optional[BackendClient] = None) -> "AppState":
        tokens = TokenStore(config.resolved_token_file())
        backend = backend or BackendClient(config.api_base_url, timeout=config.request_timeout)
        return cls(
            config=config,
            tokens=tokens,
            backend=backend,
            sessions=SessionManager(config, tokens, backend),
            directory=RepositoryDirectory(tokens, backend),
        )

    def find_repository(self, repo_id: int) -> Optional[Repository]:
        for repo in self.repositories or []:
            if repo.id == repo_id:
                return repo
        return None

    def new_workflow(self, repo: Repository) -> DocumentationWorkflow:
        """Replace the current workflow; a pending run for the old one is abandoned."""
        if self.workflow is not None:
            self.workflow.abandon()
        self.workflow = DocumentationWorkflow(
            repo,
            self.tokens,
            self.backend,
            phase_delay=self.config.phase_delay,
            contains_api=self.config.contains_api,
        )
        return self.workflow

    def forget_user_data(self) -> None:
        if self.workflow is not None:
            self.workflow.abandon()
        self.workflow = None
        self.repositories = None
        self.repositories_error = None
