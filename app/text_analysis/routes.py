import logging

from flask import Blueprint, request, jsonify, Response

from app.export import EXPORT_FORMATS, export_submission, export_filename
from app.submission_store import PersistenceError, is_valid_owner_id
from .models import SubmissionError, RecordError
from .services import AnalysisOrchestrator

logger = logging.getLogger(__name__)

SUBMISSION_STATUS = {
    SubmissionError.INVALID_OWNER: 400,
    SubmissionError.TEXT_TOO_SHORT: 400,
    SubmissionError.QUOTA_EXHAUSTED: 429,
    SubmissionError.SCORING_ERROR: 502,
    SubmissionError.PERSISTENCE_ERROR: 503,
}

RECORD_STATUS = {
    RecordError.NOT_FOUND: 404,
    RecordError.FORBIDDEN: 403,
    RecordError.INVALID_REVISION: 400,
    RecordError.PERSISTENCE_ERROR: 503,
}

SUBMISSION_MESSAGES = {
    SubmissionError.SCORING_ERROR: "Failed to analyze text. Please try again.",
    SubmissionError.PERSISTENCE_ERROR: "Your analysis could not be saved. Please try again.",
}


def create_text_analysis_routes(orchestrator: AnalysisOrchestrator, user_service) -> Blueprint:
    """Create Flask routes for text analysis functionality."""

    text_analysis_bp = Blueprint('text_analysis', __name__)

    @text_analysis_bp.route("/analyze", methods=["POST"])
    def analyze():
        """Score a text and save it as a new submission."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        data = request.get_json(silent=True)
        if not isinstance(data, dict) or 'text' not in data:
            return jsonify({"error": "Missing text"}), 400
        if not isinstance(data['text'], str):
            return jsonify({"error": "Text must be a string"}), 400
        if not isinstance(data.get('title'), (str, type(None))):
            return jsonify({"error": "Title must be a string"}), 400

        outcome = orchestrator.submit(uid, data.get('title'), data['text'])

        if outcome.success:
            return jsonify(outcome.to_dict())

        body = outcome.to_dict()
        # Infrastructure details stay in the logs
        body["message"] = SUBMISSION_MESSAGES.get(outcome.error, outcome.message)
        return jsonify(body), SUBMISSION_STATUS[outcome.error]

    @text_analysis_bp.route("/usage", methods=["GET"])
    def get_usage():
        """Get the current user's plan tier and remaining quota."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        try:
            usage = orchestrator.get_usage(uid)
        except PersistenceError as e:
            return jsonify({
                "error": "Failed to get usage information",
                "message": str(e)
            }), 503

        return jsonify({"success": True, "usage": usage.to_dict()})

    @text_analysis_bp.route("/admin/usage/<owner_id>", methods=["GET"])
    def get_user_usage(owner_id):
        """Usage for any user, admins only."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401
        if not user_service.is_admin_user(uid):
            return jsonify({"error": "Admin access required"}), 403
        if not is_valid_owner_id(owner_id):
            return jsonify({"error": "Invalid user id"}), 400

        try:
            usage = orchestrator.get_usage(owner_id)
        except PersistenceError as e:
            return jsonify({"error": "Failed to get usage information", "message": str(e)}), 503

        return jsonify({"success": True, "uid": owner_id, "usage": usage.to_dict()})

    @text_analysis_bp.route("/submissions/<submission_id>", methods=["GET"])
    def get_submission(submission_id):
        """Get one of the current user's submissions."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        outcome = orchestrator.get_submission(submission_id, uid)
        if outcome.success:
            return jsonify(outcome.to_dict())
        return jsonify(outcome.to_dict()), RECORD_STATUS[outcome.error]

    @text_analysis_bp.route("/submissions/<submission_id>/revise", methods=["POST"])
    def revise_submission(submission_id):
        """Revise the analysis of an existing submission."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not isinstance(data.get('analysis'), dict):
            return jsonify({"error": "Missing analysis"}), 400

        outcome = orchestrator.revise(submission_id, uid, data['analysis'])
        if outcome.success:
            return jsonify(outcome.to_dict())
        return jsonify(outcome.to_dict()), RECORD_STATUS[outcome.error]

    @text_analysis_bp.route("/submissions/<submission_id>/export", methods=["GET"])
    def export(submission_id):
        """Download a submission's analysis as PDF, HTML or Markdown."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        fmt = request.args.get("format", "pdf").lower()
        if fmt not in EXPORT_FORMATS:
            return jsonify({"error": "Unsupported format", "allowed": sorted(EXPORT_FORMATS)}), 400

        outcome = orchestrator.get_submission(submission_id, uid)
        if not outcome.success:
            return jsonify(outcome.to_dict()), RECORD_STATUS[outcome.error]

        try:
            content = export_submission(outcome.submission, fmt)
        except Exception as e:
            logger.exception(f"Export of {submission_id} as {fmt} failed")
            return jsonify({"error": "Export failed", "message": str(e)}), 500

        filename = export_filename(outcome.submission, fmt)
        return Response(
            content,
            mimetype=EXPORT_FORMATS[fmt],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return text_analysis_bp
