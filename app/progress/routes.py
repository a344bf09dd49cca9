"""
Progress dashboard routes.
"""
import logging

from flask import Blueprint, request, jsonify

from app.submission_store import PersistenceError
from .models import ProgressFilter
from .services import ProgressAggregator

logger = logging.getLogger(__name__)


def create_progress_routes(aggregator: ProgressAggregator, user_service) -> Blueprint:
    """Create progress dashboard routes."""
    bp = Blueprint('progress', __name__)

    @bp.route("/progress", methods=["GET"])
    def get_progress():
        """Summary statistics and filtered submissions for the current user."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        try:
            kind = ProgressFilter.from_value(request.args.get("filter", "all"))
        except ValueError:
            allowed = [f.value for f in ProgressFilter]
            return jsonify({"error": "Unknown filter", "allowed": allowed}), 400

        try:
            view = aggregator.progress_view(uid, kind)
        except PersistenceError as e:
            logger.error(f"Failed to load progress for {uid}: {e}")
            return jsonify({
                "error": "Failed to load your progress data",
                "message": str(e)
            }), 503

        return jsonify({"success": True, **view})

    return bp
