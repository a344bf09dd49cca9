import argparse
import logging
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request
from werkzeug.middleware.proxy_fix import ProxyFix

from config_manager import ConfigManager
from scoring_service.scorer import Scorer
from app.submission_store import SubmissionStore
from app.user_management.factory import create_user_management_module
from app.quota.factory import create_quota_module
from app.text_analysis.factory import create_text_analysis_module
from app.progress.factory import create_progress_module

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent.parent


def create_app(
    config: Optional[ConfigManager] = None,
    scorer: Optional[Scorer] = None,
    base_dir: Path = BASE_DIR,
) -> Flask:
    """Build the Flask application and wire every module together.

    Relative paths in the ``paths`` config section resolve against
    ``base_dir``; absolute ones are used as is.
    """
    config = config or ConfigManager()
    app_config = config.get_app_config()
    paths_config = config.get_paths_config()
    submission_config = config.get_submission_config()
    quota_settings = config.get_quota_settings()
    llm_config = config.get_llm_config()

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_proto=1,     # trust 1 hop for X-Forwarded-Proto
        x_host=1,      # trust 1 hop for X-Forwarded-Host
        x_prefix=1)    # trust 1 hop for X-Forwarded-Prefix

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    data_dir = Path(base_dir) / paths_config.data_dir
    submissions_dir = data_dir / paths_config.submissions_dir
    prompts_dir = Path(base_dir) / paths_config.prompts_dir
    submissions_dir.mkdir(parents=True, exist_ok=True)

    store = SubmissionStore(submissions_dir)

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------
    user_management_module = create_user_management_module(
        admin_user_ids=app_config.admin_user_ids
    )
    user_service = user_management_module["service"]

    quota_module = create_quota_module(
        store=store,
        free_limit=quota_settings.free_limit,
        standard_limit=quota_settings.standard_limit,
        tier_policy=quota_settings.tier_policy,
        standard_users=quota_settings.standard_users,
        premium_users=quota_settings.premium_users,
        min_text_length=submission_config.min_text_length,
    )

    text_analysis_module = create_text_analysis_module(
        store=store,
        quota_module=quota_module,
        user_service=user_service,
        submission_config=submission_config,
        llm_config=llm_config,
        prompts_dir=prompts_dir,
        scorer=scorer,
    )

    progress_module = create_progress_module(store=store, user_service=user_service)

    app.register_blueprint(text_analysis_module["blueprint"])
    app.register_blueprint(progress_module["blueprint"])

    app.extensions["writecheck"] = {
        "store": store,
        "quota": quota_module,
        "orchestrator": text_analysis_module["orchestrator"],
        "aggregator": progress_module["aggregator"],
        "user_service": user_service,
    }

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    @app.get("/actuator/health")
    def actuator_health():
        """Health check endpoint for monitoring tools and cloud platforms."""
        return jsonify({
            "status": "UP",
            "service": "ai-write-check"
        }), 200

    @app.get("/me")
    def me():
        """Who the current cookie identifies, if anyone."""
        uid = user_service.get_current_user_id()
        return jsonify({
            "authenticated": bool(uid),
            "uid": uid,
            "is_admin": bool(uid) and user_service.is_admin_user(uid),
        })

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found", "path": request.path}), 404

    logger.info(
        f"App ready: scorer={submission_config.scorer}, tier_policy={quota_settings.tier_policy}, "
        f"strict_quota={submission_config.strict_quota}, data={submissions_dir}"
    )
    return app


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Flask application for text analysis")
    parser.add_argument("--port", type=int, help="Port to run the server on")
    parser.add_argument("--host", type=str, help="Host to bind the server to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    args = parser.parse_args()

    config = ConfigManager()
    app_config = config.get_app_config()

    # Override configuration with command line arguments
    if args.port:
        app_config.port = args.port
    if args.host:
        app_config.host = args.host
    if args.debug:
        app_config.debug = args.debug

    app = create_app(config)
    app.run(
        host=app_config.host,
        port=app_config.port,
        debug=app_config.debug
    )
