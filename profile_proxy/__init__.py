import sys
import logging
from datetime import datetime, timezone

from flask import Flask, request
from flask_cors import CORS
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from .config import load_config
from .errors import ProxyError
from .utils.logger import get_logger


def create_app(store=None):
    load_dotenv()
    store = store or load_config()

    app = Flask(__name__)
    app.config["STORE"] = store
    app.config["MAX_CONTENT_LENGTH"] = store.get("max_body_mb", 10) * 1024 * 1024
    CORS(app)

    # =========================================================
    # Logging: gunicorn's handlers when running under it, plus stdout
    # =========================================================
    gunicorn_error = logging.getLogger("gunicorn.error")
    fmt = logging.Formatter("[%(asctime)s][%(levelname)s] %(message)s", "%H:%M:%S")
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)

    app.logger.handlers = list(gunicorn_error.handlers) + [sh]
    app.logger.setLevel(logging.INFO)

    log = get_logger()
    if not log.handlers:
        log.handlers = list(gunicorn_error.handlers) + [sh]
        log.propagate = False

    @app.before_request
    def log_request():
        log.info(f"{request.method} {request.path}")

    # =========================================================
    # Blueprints
    # =========================================================
    from .routes.profile import bp as profile_bp
    from .routes.wishlist import bp as wishlist_bp

    app.register_blueprint(profile_bp)
    app.register_blueprint(wishlist_bp, url_prefix="/wishlist")

    # =========================================================
    # Errors -> {"success": false, "error": ...}
    # =========================================================
    @app.errorhandler(ProxyError)
    def proxy_error(e: ProxyError):
        if e.status_code >= 500:
            log.error(f"{request.method} {request.path} failed: {e}")
        else:
            log.warning(f"{request.method} {request.path} rejected: {e}")
        return e.payload, e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return {"success": False, "error": e.description}, e.code

    @app.errorhandler(Exception)
    def unexpected_error(e: Exception):
        log.exception(f"{request.method} {request.path} crashed")
        return {"success": False, "error": str(e)}, 500

    # =========================================================
    # Health check
    # =========================================================
    @app.get("/health")
    def health():
        return {
            "success": True,
            "status": "ok",
            "message": "Customer profile service is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "shop": store["domain"],
        }, 200

    log.info(f"Connected to Shopify store: {store['domain']} (API {store['api_version']})")
    return app
