# reposcribe/webui/backend.py
import logging
import time
from datetime import datetime, timezone
from urllib.parse import urlencode, urlparse

import requests
from flask import Blueprint, jsonify, redirect, request

from ..config import Config
from ..handlers import sample_doc
from ..models import Repository

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_AGENT = "RepoScribe"


def _gh_headers(token: str) -> dict:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": USER_AGENT,
    }


def _bearer() -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth[len("Bearer "):].strip() or None


def _repo_path(link: str) -> str | None:
    """'https://github.com/owner/name(.git)' -> 'owner/name'."""
    parts = [p for p in urlparse(link).path.split("/") if p]
    if len(parts) < 2:
        return None
    name = parts[1][:-4] if parts[1].endswith(".git") else parts[1]
    return f"{parts[0]}/{name}"


def create_backend(config: Config) -> Blueprint:
    """Blueprint serving the backend contract straight from GitHub."""
    bp = Blueprint("local_backend", __name__)
    timeout = config.request_timeout

    # ---------- oauth ----------
    @bp.get("/auth/github/login")
    def github_login():
        if not config.client_id:
            return jsonify({"error": "CLIENT_ID is not configured"}), 500
        params = {
            "client_id": config.client_id,
            "redirect_uri": request.args.get("redirect_uri") or config.callback_url,
            "scope": request.args.get("scope") or config.oauth_scope,
        }
        state = request.args.get("state")
        if state:
            params["state"] = state
        return redirect(f"{GITHUB_AUTHORIZE_URL}?{urlencode(params)}")

    @bp.get("/auth/github/callback")
    def github_callback():
        code = request.args.get("code")
        if not code:
            return jsonify({"error": "Authorization code is required"}), 400
        if not config.client_id or not config.client_secret:
            return jsonify({"error": "OAuth client credentials are not configured"}), 500
        try:
            r = requests.post(
                GITHUB_TOKEN_URL,
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
                json={
                    "client_id": config.client_id,
                    "client_secret": config.client_secret,
                    "code": code,
                    "redirect_uri": request.args.get("redirect_uri") or config.callback_url,
                },
                timeout=timeout,
            )
            token_data = r.json()
            if token_data.get("error") or not token_data.get("access_token"):
                return jsonify({"error": token_data.get("error_description") or "code exchange failed"}), 400
            access_token = token_data["access_token"]

            u = requests.get(f"{GITHUB_API}/user", headers=_gh_headers(access_token), timeout=timeout)
            if u.status_code != 200:
                return jsonify({"error": "Failed to fetch user"}), 502
            return jsonify({"accessToken": access_token, "user": u.json()})
        except (requests.RequestException, ValueError) as e:
            logger.error("authentication error: %s", e)
            return jsonify({"error": "Internal server error"}), 500

    @bp.get("/auth/user")
    def auth_user():
        token = _bearer()
        if not token:
            return jsonify({"error": "Unauthorized"}), 401
        try:
            r = requests.get(f"{GITHUB_API}/user", headers=_gh_headers(token), timeout=timeout)
            if r.status_code != 200:
                return jsonify({"error": "Invalid token"}), 401
            return jsonify(r.json())
        except (requests.RequestException, ValueError) as e:
            logger.error("user fetch error: %s", e)
            return jsonify({"error": "Internal server error"}), 500

    # ---------- repositories ----------
    @bp.get("/api/repositories")
    def repositories():
        token = _bearer()
        if not token:
            return jsonify({"error": "Unauthorized"}), 401
        try:
            r = requests.get(
                f"{GITHUB_API}/user/repos",
                headers=_gh_headers(token),
                params={"sort": "updated", "per_page": 100},
                timeout=timeout,
            )
            if r.status_code != 200:
                return jsonify({"error": "Failed to fetch repositories"}), r.status_code
            return jsonify([repo for repo in r.json() if not repo.get("fork")])
        except (requests.RequestException, ValueError) as e:
            logger.error("repositories fetch error: %s", e)
            return jsonify({"error": "Internal server error"}), 500

    # ---------- documentation ----------
    @bp.post("/api/generateDoc")
    def generate_doc():
        data = request.get_json(silent=True) or {}
        token = data.get("accessToken")
        link = data.get("repoLink")
        if not token:
            return jsonify({"error": "Unauthorized"}), 401
        path = _repo_path(link or "")
        if not path:
            return jsonify({"error": "Repository is required"}), 400
        try:
            r = requests.get(f"{GITHUB_API}/repos/{path}", headers=_gh_headers(token), timeout=timeout)
            if r.status_code != 200:
                return jsonify({"error": f"Repository {path} not accessible"}), r.status_code
            repo = Repository.from_api(r.json())
        except (requests.RequestException, ValueError) as e:
            logger.error("documentation generation error: %s", e)
            return jsonify({"error": "Failed to generate documentation"}), 500

        return jsonify({
            "id": f"doc_{int(time.time() * 1000)}",
            "repository": repo.to_dict(),
            "content": sample_doc.render(repo),
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "status": "completed",
        })

    return bp
