import logging
import os
import uuid
from typing import Any

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request

from app.crm.api import bp as api_bp
from app.crm.config import load_config
from app.crm.db import create_schema, init_db
from app.crm.routes import bp as routes_bp
from app.crm.store import Store


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(level)


def create_app(config: dict[str, Any] | None = None, store: Store | None = None) -> Flask:
    """
    App factory. `config` overrides environment-derived settings; `store`
    replaces the SQLAlchemy-backed persistence gateway (tests pass a double).
    """
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    if config:
        app.config.from_mapping(config)
    app.json.sort_keys = False  # type: ignore[attr-defined]

    _configure_logging(app.config["LOG_LEVEL"])

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    if store is None:
        init_db(app)

        def _dispose_engine_on_fork() -> None:
            if hasattr(os, "register_at_fork"):
                def _after_fork_child():
                    engine = app.extensions.get("sqlalchemy_engine")
                    if engine:
                        engine.dispose(close=False)
                        app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

                os.register_at_fork(after_in_child=_after_fork_child)

        _dispose_engine_on_fork()

        if app.config.get("AUTO_CREATE_SCHEMA"):
            try:
                create_schema(app.extensions["sqlalchemy_engine"])
            except Exception as e:
                app.logger.exception("Schema creation failed: %s", e)
                raise
    else:
        app.extensions["crm_store"] = store

    app.register_blueprint(routes_bp)
    app.register_blueprint(api_bp, url_prefix="/api")

    @app.before_request
    def _assign_request_id():
        # Per-request id for audit/log correlation; honour an upstream proxy's id.
        incoming = (request.headers.get("X-Request-ID") or "").strip()
        g.request_id = incoming[:64] if incoming else uuid.uuid4().hex

    @app.after_request
    def _echo_request_id(response):
        rid = getattr(g, "request_id", None)
        if rid:
            response.headers["X-Request-ID"] = rid
        return response

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "Internal server error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
