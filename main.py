# main.py
import argparse
import logging
from urllib.parse import urlparse

from reposcribe.config import DEFAULT_API_BASE_URL, load_config
from reposcribe.state import AppState
from reposcribe.webui.server import create_app

logger = logging.getLogger(__name__)


def main():
    ap = argparse.ArgumentParser(description="RepoScribe web client")
    ap.add_argument("-c", "--config", metavar="FILE", help="KEY=VALUE settings file")
    ap.add_argument("--host", default=None, help="bind address (defaults to PUBLIC_URL's host)")
    ap.add_argument("--port", type=int, default=None, help="bind port (defaults to PUBLIC_URL's port)")
    ap.add_argument("--debug", action="store_true", help="run Flask in debug mode")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_config(args.config)
    # With the built-in backend the client talks to itself unless told otherwise
    if config.local_backend and config.api_base_url == DEFAULT_API_BASE_URL:
        config.api_base_url = config.public_url

    public = urlparse(config.public_url)
    host = args.host or public.hostname or "127.0.0.1"
    port = args.port or public.port or 5000

    state = AppState.from_config(config)
    app = create_app(state)
    if app is None:
        raise RuntimeError("create_app returned None")
    logger.info("serving on %s:%d, backend %s", host, port, config.api_base_url)
    app.run(host=host, port=port, debug=args.debug, threaded=True)


if __name__ == "__main__":
    main()
