from pathlib import Path
from typing import Dict, Any, Optional

from scoring_service.scorer import Scorer, create_scorer
from app.submission_store import SubmissionStore
from .services import AnalysisOrchestrator
from .routes import create_text_analysis_routes


def create_text_analysis_module(
    store: SubmissionStore,
    quota_module: Dict[str, Any],
    user_service,
    submission_config,
    llm_config=None,
    prompts_dir: Optional[Path] = None,
    scorer: Optional[Scorer] = None,
) -> Dict[str, Any]:
    """Create and configure all text analysis components.

    ``scorer`` overrides the one named in ``submission_config.scorer``.
    """
    if scorer is None:
        scorer = create_scorer(submission_config.scorer, llm_config, prompts_dir)

    orchestrator = AnalysisOrchestrator(
        store=store,
        accountant=quota_module["accountant"],
        gate=quota_module["gate"],
        scorer=scorer,
        scorer_timeout=submission_config.scorer_timeout_seconds,
        strict_quota=submission_config.strict_quota,
    )

    text_analysis_bp = create_text_analysis_routes(orchestrator, user_service)

    return {
        "blueprint": text_analysis_bp,
        "orchestrator": orchestrator,
        "scorer": scorer
    }
