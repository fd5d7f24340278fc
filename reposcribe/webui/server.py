# reposcribe/webui/server.py
import logging

from flask import Flask, Response, abort, jsonify, redirect, render_template, request, url_for

from ..errors import ListFetchFailed
from ..handlers.docs import STATE_COMPLETED
from ..handlers.repositories import SORT_KEYS, SORT_UPDATED, filter_and_sort
from ..state import AppState
from .backend import create_backend

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    "oauth_error": "GitHub reported an error during sign-in.",
    "auth_failed": "Sign-in could not be completed. Please try again.",
}


def create_app(shared_state: AppState) -> Flask:
    app = Flask(__name__, static_folder="static", template_folder="templates")
    state = shared_state

    if state.config.local_backend:
        app.register_blueprint(create_backend(state.config))
        logger.info("local backend enabled")

    # ---------- helpers ----------
    @app.before_request
    def _check_session_once():
        # The backend blueprint answers API calls itself; only client views need a session.
        if request.blueprint == "local_backend" or request.endpoint == "static":
            return None
        if state.sessions.session.loading:
            state.sessions.restore_session()
        return None

    def _require_auth():
        if not state.sessions.session.authenticated:
            return redirect(url_for("index"))
        return None

    def _load_repositories(force: bool = False) -> None:
        if state.repositories is not None and not force:
            return
        try:
            state.repositories = state.directory.list()
            state.repositories_error = None
        except ListFetchFailed as e:
            logger.warning("repository listing failed: %s", e)
            state.repositories = None
            state.repositories_error = str(e)

    @app.context_processor
    def _inject_session():
        return {"session_state": state.sessions.session}

    # ---------- pages ----------
    @app.get("/")
    def index():
        if state.sessions.session.authenticated:
            return redirect(url_for("dashboard"))
        code = request.args.get("error")
        message = ERROR_MESSAGES.get(code, code) if code else state.sessions.session.error
        return render_template("index.html", error=message)

    @app.get("/login")
    def login():
        return redirect(state.sessions.begin_login())

    @app.post("/logout")
    def logout():
        state.sessions.end_session()
        state.forget_user_data()
        return redirect(url_for("index"))

    # ---------- oauth ----------
    @app.get("/auth/callback")
    def auth_callback():
        if request.args.get("error"):
            logger.warning("oauth error from provider: %s", request.args.get("error"))
            return redirect(url_for("index", error="oauth_error"))

        code = (request.args.get("code") or "").strip()
        if not code:
            return render_template("callback_error.html", error="Authorization code is missing."), 400

        # a reload of this page replays the same code; the manager skips the exchange
        if state.sessions.complete_login(code, request.args.get("state")):
            state.forget_user_data()
        if state.sessions.session.authenticated:
            return redirect(url_for("index"))
        return redirect(url_for("index", error="auth_failed"))

    @app.get("/auth/success")
    def auth_success():
        token = (request.args.get("accessToken") or "").strip()
        if not token:
            return redirect(url_for("index"))
        state.forget_user_data()
        session = state.sessions.accept_token(token)
        return render_template("success.html", ok=session.authenticated)

    # ---------- dashboard ----------
    @app.get("/dashboard")
    def dashboard():
        denied = _require_auth()
        if denied:
            return denied
        _load_repositories(force=request.args.get("refresh") == "1")

        query = request.args.get("q", "")
        sort = request.args.get("sort", SORT_UPDATED)
        if sort not in SORT_KEYS:
            sort = SORT_UPDATED
        repos = filter_and_sort(state.repositories or [], query, sort)
        return render_template(
            "dashboard.html",
            repos=repos,
            total=len(state.repositories or []),
            query=query,
            sort=sort,
            sort_keys=SORT_KEYS,
            error=state.repositories_error,
        )

    @app.post("/dashboard/generate/<int:repo_id>")
    def generate(repo_id: int):
        denied = _require_auth()
        if denied:
            return denied
        repo = state.find_repository(repo_id)
        if repo is None:
            abort(404)
        state.new_workflow(repo).start()
        return redirect(url_for("generation"))

    @app.get("/dashboard/generate")
    def generation():
        denied = _require_auth()
        if denied:
            return denied
        if state.workflow is None:
            return redirect(url_for("dashboard"))
        return render_template("generate.html", snap=state.workflow.snapshot())

    @app.post("/dashboard/generate/regenerate")
    def regenerate():
        denied = _require_auth()
        if denied:
            return denied
        if state.workflow is None:
            return redirect(url_for("dashboard"))
        if not state.workflow.regenerate():
            logger.info("regenerate ignored, a run is already in flight")
        return redirect(url_for("generation"))

    @app.get("/dashboard/generate/download")
    def download():
        denied = _require_auth()
        if denied:
            return denied
        wf = state.workflow
        if wf is None or wf.state != STATE_COMPLETED or wf.documentation is None:
            abort(404)
        return Response(
            wf.documentation.content,
            mimetype="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{wf.download_filename()}"'},
        )

    # ---------- json ----------
    @app.get("/api/status")
    def api_status():
        return jsonify(state.sessions.session.to_dict())

    @app.get("/api/generation")
    def api_generation():
        if not state.sessions.session.authenticated:
            return jsonify({"error": "not authenticated"}), 401
        if state.workflow is None:
            return jsonify({"error": "no generation in progress"}), 404
        return jsonify(state.workflow.snapshot())

    return app
