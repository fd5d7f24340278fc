# reposcribe/config.py
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_PREFIX = "REPOSCRIBE_"
DEFAULT_API_BASE_URL = "https://reposcribe-1.onrender.com"


def default_token_file() -> Path:
    return Path.home() / ".config" / "reposcribe" / "storage.json"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    api_base_url: str = DEFAULT_API_BASE_URL
    public_url: str = "http://localhost:5000"
    client_id: str | None = None
    client_secret: str | None = None
    oauth_scope: str = "repo read:user"
    token_file: Path | None = None
    phase_delay: float = 2.0
    contains_api: bool = True
    local_backend: bool = False
    request_timeout: float = 30.0

    @property
    def callback_url(self) -> str:
        return self.public_url.rstrip("/") + "/auth/callback"

    def resolved_token_file(self) -> Path:
        return self.token_file or default_token_file()


def parse_config_file(path: str) -> dict:
    """Read KEY=VALUE lines; blank lines, '#' comments and junk are skipped."""
    p = Path(path)
    if not p.exists():
        logger.warning("config file %s not found, using defaults", path)
        return {}
    values = {}
    for raw in p.read_text(encoding="utf-8").splitlines():
        ln = raw.strip()
        if not ln or ln.startswith("#") or "=" not in ln:
            continue
        k, v = ln.split("=", 1)
        k = k.strip().upper()
        v = v.strip().strip("'").strip('"')
        values[k] = v
    return values


def _coerce(name: str, raw: str):
    if name in ("phase_delay", "request_timeout"):
        secs = float(raw)
        if secs < 0:
            raise ValueError(f"{name.upper()} must be >= 0")
        return secs
    if name in ("contains_api", "local_backend"):
        return _as_bool(raw)
    if name == "token_file":
        return Path(raw).expanduser()
    if name in ("client_id", "client_secret"):
        return raw or None
    return raw


def load_config(path: str | None = None, environ=None) -> Config:
    """File values first, then REPOSCRIBE_* environment variables on top."""
    environ = os.environ if environ is None else environ
    values = parse_config_file(path) if path else {}
    for key, val in environ.items():
        if key.startswith(ENV_PREFIX):
            values[key[len(ENV_PREFIX):]] = val

    cfg = Config()
    known = {f.name for f in fields(Config)}
    for key, raw in values.items():
        name = key.lower()
        if name not in known:
            logger.debug("ignoring unknown config key %s", key)
            continue
        try:
            setattr(cfg, name, _coerce(name, raw))
        except ValueError as e:
            raise ValueError(f"invalid value for {key}: {e}") from e
    return cfg
