"""
Factory for creating the progress dashboard module.
"""
from app.submission_store import SubmissionStore
from .services import ProgressAggregator
from .routes import create_progress_routes


def create_progress_module(store: SubmissionStore, user_service) -> dict:
    """Create progress module with aggregator and routes.

    Args:
        store: Submission store to aggregate over
        user_service: Identity collaborator for the current user

    Returns:
        Dictionary containing the aggregator and blueprint
    """
    aggregator = ProgressAggregator(store)
    blueprint = create_progress_routes(aggregator, user_service)

    return {
        "aggregator": aggregator,
        "blueprint": blueprint
    }
