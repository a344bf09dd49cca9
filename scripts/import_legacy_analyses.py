#!/usr/bin/env python3
"""
Import script for analyses exported from the legacy document database.

The old front-end stored one flat document per analysis. An export is either
a list of documents or an object keyed by document id:

{
  "a1b2c3": {
    "userId": "u-42",
    "title": "Essay draft",
    "text": "...",
    "aiInfluence": 35,
    "score": 8.2,
    "readabilityScore": 74,
    "suggestions": ["Vary your sentence structures"],
    "strengths": [{"text": "Clear organization", "color": "green"}],
    "createdAt": "2024-03-05T10:15:00Z"
  }
}

Each document becomes a Submission in ``<data-dir>/<submissions-dir>/<userId>.json``;
documents already imported (same id) are skipped.

Usage:
    python scripts/import_legacy_analyses.py EXPORT_FILE [--dry-run] [--data-dir DATA_DIR]
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.submission_store import Submission, SubmissionStore, is_valid_owner_id


def load_legacy_documents(export_file: Path) -> List[Dict[str, Any]]:
    """Read an export and return its documents with ``id`` filled in."""
    with open(export_file, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if isinstance(data, dict):
        return [{"id": doc_id, **doc} for doc_id, doc in data.items() if isinstance(doc, dict)]
    if isinstance(data, list):
        return [doc for doc in data if isinstance(doc, dict)]
    raise ValueError(f"Unsupported export format in {export_file}")


def import_legacy(export_file: Path, store: Optional[SubmissionStore], dry_run: bool = False) -> dict:
    """
    Convert legacy documents and append them to the store.

    Args:
        export_file: JSON export to read
        store: Destination store; may be None for a dry run
        dry_run: If True, only decode and report

    Returns:
        Import result dict with statistics
    """
    result = {
        "documents": 0,
        "imported": 0,
        "skipped": 0,
        "errors": []
    }

    try:
        documents = load_legacy_documents(export_file)
    except (OSError, ValueError) as e:
        result["errors"].append(f"Failed to load export: {e}")
        print(f"❌ Error loading {export_file}: {e}")
        return result

    result["documents"] = len(documents)
    print(f"📂 Found {len(documents)} documents in {export_file}")

    submissions = []
    for doc in documents:
        owner_id = doc.get("owner_id") or doc.get("userId")
        if not is_valid_owner_id(owner_id):
            result["errors"].append(f"{doc.get('id')}: invalid user id {owner_id!r}")
            continue
        try:
            submissions.append(Submission.from_dict(doc))
        except (KeyError, TypeError, ValueError) as e:
            result["errors"].append(f"{doc.get('id')}: {e}")

    if dry_run:
        print("\n🔍 DRY RUN - No changes made")
        print(f"   Would import up to {len(submissions)} submissions")
        return result

    result["imported"] = store.import_submissions(submissions)
    result["skipped"] = len(submissions) - result["imported"]
    print(f"\n💾 Imported {result['imported']} submissions into {store.data_dir}")
    return result


def main():
    parser = argparse.ArgumentParser(
        description="Import analyses from a legacy document export"
    )
    parser.add_argument("export_file", type=Path, help="JSON export to import")
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Show what would be done without making changes"
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path(__file__).parent.parent / "data" / "submissions",
        help="Path to submissions directory (default: ./data/submissions)"
    )

    args = parser.parse_args()

    print("🚀 Legacy Analysis Import")
    print("=" * 50)
    print(f"Export file: {args.export_file}")
    print(f"Submissions directory: {args.data_dir}")
    print(f"Dry run: {args.dry_run}")
    print()

    # A dry run must not create the submissions directory
    store = None if args.dry_run else SubmissionStore(args.data_dir)
    result = import_legacy(args.export_file, store, args.dry_run)

    print()
    print("📊 Import Summary:")
    print(f"   - Documents: {result['documents']}")
    print(f"   - Imported: {result['imported']}")
    print(f"   - Skipped (already present): {result['skipped']}")
    print(f"   - Errors: {len(result['errors'])}")

    if result["errors"]:
        print("\n❌ Errors encountered:")
        for error in result["errors"]:
            print(f"   - {error}")
        sys.exit(1)

    print("\n✅ Import complete!")


if __name__ == "__main__":
    main()
