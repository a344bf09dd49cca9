"""
JSON-file backed submission store.

One file per owner under ``data_dir``. History is append-only: submissions
can be created and their analysis revised, never deleted.
"""

import json
import logging
import os
import re
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from scoring_service.models import AnalysisResult
from .errors import InvalidOwner, NotFound, Forbidden, InvalidRevision, PreconditionFailed, PersistenceError
from .models import Submission, ensure_aware, normalize_title

logger = logging.getLogger(__name__)

OWNER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_@\-][A-Za-z0-9_@.\-]*$")

REVISABLE_FIELDS = frozenset(AnalysisResult.model_fields)

Precondition = Callable[[List[Submission]], bool]


def is_valid_owner_id(owner_id: Optional[str]) -> bool:
    """Owner ids double as file names, so keep them path-safe."""
    return bool(owner_id) and len(owner_id) <= 128 and bool(OWNER_ID_PATTERN.match(owner_id))


class SubmissionStore:
    """Durable collection of submissions keyed by owner."""

    def __init__(self, data_dir: Path, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize SubmissionStore.

        Args:
            data_dir: Directory holding one ``<owner_id>.json`` file per owner
            clock: Returns the current time; used for created_at/updated_at
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.clock = clock or (lambda: datetime.now().astimezone())
        self._lock = Lock()
        # submission id -> owner id; ids never move between owners
        self._owners: Dict[str, str] = {}

    # =====================
    # Public operations
    # =====================

    def create(
        self,
        owner_id: str,
        title: Optional[str],
        text: str,
        analysis: AnalysisResult,
        precondition: Optional[Precondition] = None,
    ) -> Submission:
        """
        Append a new submission for ``owner_id``.

        Args:
            owner_id: Owning user
            title: Display title; the placeholder is used when blank
            text: Submitted text the analysis belongs to
            analysis: Scorer result
            precondition: Optional check run against the owner's current
                submissions while the write lock is held

        Raises:
            PreconditionFailed: precondition returned False; nothing written
            PersistenceError: storage could not be read or written
        """
        self._check_owner_id(owner_id)

        with self._lock:
            records = self._load_records(owner_id)
            if precondition is not None and not precondition(self._decode(owner_id, records)):
                raise PreconditionFailed(f"Create precondition rejected for {owner_id}")

            submission = Submission(
                id=uuid.uuid4().hex,
                owner_id=owner_id,
                title=normalize_title(title),
                text=text,
                created_at=ensure_aware(self.clock()),
                analysis=analysis,
            )
            records.append(submission.to_dict())
            self._save_records(owner_id, records)
            self._owners[submission.id] = owner_id

        logger.info(f"Created submission {submission.id} for {owner_id}")
        return submission

    def revise(self, submission_id: str, caller_id: str, analysis_partial: Dict[str, Any]) -> Submission:
        """
        Merge ``analysis_partial`` into a submission's analysis.

        Only analysis fields may change; ``text``, ``owner_id`` and
        ``created_at`` are never touched. ``updated_at`` is set to now.

        Raises:
            NotFound: no submission has this id
            Forbidden: the caller does not own it
            InvalidRevision: empty partial, unknown keys, or invalid values
        """
        if not isinstance(analysis_partial, dict) or not analysis_partial:
            raise InvalidRevision("Revision must contain at least one analysis field")
        unknown = set(analysis_partial) - REVISABLE_FIELDS
        if unknown:
            raise InvalidRevision(f"Fields cannot be revised: {', '.join(sorted(unknown))}")

        with self._lock:
            owner_id = self._locate(submission_id, caller_id)
            records = self._load_records(owner_id)
            index, current = self._find_in_records(owner_id, records, submission_id)

            merged = current.analysis.model_dump(mode="json")
            for key, value in analysis_partial.items():
                if key == "readability" and isinstance(value, dict):
                    merged[key] = {**merged[key], **value}
                else:
                    merged[key] = value
            try:
                analysis = AnalysisResult.model_validate(merged)
            except ValidationError as e:
                raise InvalidRevision(str(e)) from e

            revised = replace(current, analysis=analysis, updated_at=ensure_aware(self.clock()))
            records[index] = revised.to_dict()
            self._save_records(owner_id, records)

        logger.info(f"Revised submission {submission_id} ({', '.join(sorted(analysis_partial))})")
        return revised

    def get(self, submission_id: str, caller_id: str) -> Submission:
        """Fetch one submission, enforcing ownership."""
        owner_id = self._locate(submission_id, caller_id)
        records = self._load_records(owner_id)
        return self._find_in_records(owner_id, records, submission_id)[1]

    def list_by_owner(self, owner_id: str, since: Optional[datetime] = None) -> List[Submission]:
        """
        List an owner's submissions, newest first.

        Args:
            owner_id: Owning user
            since: Only include submissions with created_at >= since
        """
        self._check_owner_id(owner_id)
        submissions = self._decode(owner_id, self._load_records(owner_id))
        if since is not None:
            since = ensure_aware(since)
            submissions = [s for s in submissions if s.created_at >= since]
        # Reverse first so equal timestamps keep newest-appended first
        return sorted(reversed(submissions), key=lambda s: s.created_at, reverse=True)

    def import_submissions(self, submissions: List[Submission]) -> int:
        """
        Append already-built submissions, keeping their ids and timestamps.

        Submissions whose id is already stored for the owner are skipped.

        Returns:
            Number of submissions written
        """
        by_owner: Dict[str, List[Submission]] = {}
        for submission in submissions:
            self._check_owner_id(submission.owner_id)
            by_owner.setdefault(submission.owner_id, []).append(submission)

        imported = 0
        with self._lock:
            for owner_id, owned in by_owner.items():
                records = self._load_records(owner_id)
                known_ids = {str(r.get("id")) for r in records}
                new_records = [s.to_dict() for s in owned if s.id not in known_ids]
                if not new_records:
                    continue
                self._save_records(owner_id, records + new_records)
                self._owners.update((str(r["id"]), owner_id) for r in new_records)
                imported += len(new_records)
                logger.info(f"Imported {len(new_records)} submissions for {owner_id}")
        return imported

    # =====================
    # Private helpers
    # =====================

    def _owner_file(self, owner_id: str) -> Path:
        return self.data_dir / f"{owner_id}.json"

    def _check_owner_id(self, owner_id: str) -> None:
        if not is_valid_owner_id(owner_id):
            raise InvalidOwner(f"Invalid owner id: {owner_id!r}")

    def _load_records(self, owner_id: str) -> List[Dict[str, Any]]:
        """Load raw records for an owner; a missing file means no history."""
        owner_file = self._owner_file(owner_id)
        if not owner_file.exists():
            return []
        try:
            with open(owner_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading submissions for {owner_id}: {e}")
            raise PersistenceError(f"Could not read submissions for {owner_id}") from e

        records = data.get("submissions") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise PersistenceError(f"Malformed submissions file for {owner_id}")
        return records

    def _save_records(self, owner_id: str, records: List[Dict[str, Any]]) -> None:
        """Write records atomically (temp file + replace)."""
        owner_file = self._owner_file(owner_id)
        tmp_file = owner_file.with_suffix(".json.tmp")
        try:
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump({"submissions": records}, f, ensure_ascii=False, indent=2)
            os.replace(tmp_file, owner_file)
        except OSError as e:
            logger.error(f"Error saving submissions for {owner_id}: {e}")
            raise PersistenceError(f"Could not write submissions for {owner_id}") from e

    def _decode(self, owner_id: str, records: List[Dict[str, Any]]) -> List[Submission]:
        try:
            return [Submission.from_dict(record) for record in records]
        except (KeyError, TypeError, ValueError) as e:
            # pydantic's ValidationError is a ValueError
            logger.error(f"Undecodable submission record for {owner_id}: {e}")
            raise PersistenceError(f"Corrupt submission record for {owner_id}") from e

    def _find_in_records(self, owner_id: str, records: List[Dict[str, Any]], submission_id: str):
        for index, submission in enumerate(self._decode(owner_id, records)):
            if submission.id == submission_id:
                return index, submission
        raise NotFound(submission_id)

    def _contains(self, owner_id: str, submission_id: str) -> bool:
        found = any(str(r.get("id")) == submission_id for r in self._load_records(owner_id))
        if found:
            self._owners[submission_id] = owner_id
        return found

    def _find_owner(self, submission_id: str, exclude: Optional[str]) -> Optional[str]:
        """Scan other owners' files; unreadable ones are skipped."""
        for owner_file in self.data_dir.glob("*.json"):
            other_owner = owner_file.stem
            if other_owner == exclude or not is_valid_owner_id(other_owner):
                continue
            try:
                if self._contains(other_owner, submission_id):
                    return other_owner
            except PersistenceError:
                logger.warning(f"Skipping unreadable submissions file {owner_file.name} while locating {submission_id}")
        return None

    def _locate(self, submission_id: str, caller_id: str) -> str:
        """Return the owner of ``submission_id`` if it is the caller."""
        owner_id = self._owners.get(submission_id)
        if owner_id is None and is_valid_owner_id(caller_id) and self._contains(caller_id, submission_id):
            owner_id = caller_id
        if owner_id is None:
            owner_id = self._find_owner(submission_id, exclude=caller_id)

        if owner_id is None:
            raise NotFound(submission_id)
        if owner_id != caller_id:
            raise Forbidden(submission_id)
        return owner_id
