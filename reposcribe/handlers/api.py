# reposcribe/handlers/api.py
from typing import Optional

import requests

USER_AGENT = "RepoScribe-WebUI/1.0"

PAGE_SIZE = 100


class BackendClient:
    """HTTP calls against the documentation backend.

    Every method returns decoded JSON and lets requests exceptions
    (including HTTPError from raise_for_status) propagate; callers decide
    what a failure means for their own state.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    # ---------- helpers ----------
    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _headers(self, token: Optional[str] = None) -> dict:
        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    # ---------- auth ----------
    def login_url(self) -> str:
        return self._url("/auth/github/login")

    def get_user(self, token: str) -> dict:
        r = self.http.get(self._url("/auth/user"), headers=self._headers(token), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def exchange_code(self, code: str, redirect_uri: str) -> dict:
        r = self.http.get(
            self._url("/auth/github/callback"),
            headers=self._headers(),
            params={"code": code, "redirect_uri": redirect_uri},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json()

    # ---------- repositories ----------
    def list_repositories(self, token: str) -> list:
        r = self.http.get(
            self._url("/api/repositories"),
            headers=self._headers(token),
            params={"sort": "updated", "per_page": PAGE_SIZE},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json()

    # ---------- documentation ----------
    def generate_doc(self, token: str, repo_link: str, contains_api: bool = True) -> dict:
        payload = {
            "accessToken": token,
            "repoLink": repo_link,
            "containsAPI": contains_api,
        }
        r = self.http.post(
            self._url("/api/generateDoc"),
            headers=self._headers(),
            json=payload,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json()


def describe_http_error(e: requests.RequestException) -> str:
    """Human-readable text for a failed call, preferring the server's own message."""
    resp = getattr(e, "response", None)
    if resp is None:
        return f"Network error: {e}"
    detail = None
    try:
        body = resp.json()
        if isinstance(body, dict):
            detail = body.get("error") or body.get("message")
    except ValueError:
        detail = None
    if not detail:
        detail = (resp.text or "").strip()[:200] or resp.reason or "no details"
    return f"Request failed ({resp.status_code}): {detail}"
