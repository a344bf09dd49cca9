"""
Identity service: resolves the current user for request handlers.

Sign-up, login and password management live in the external identity
provider; this app only consumes the resulting ``uid`` cookie.
"""
from typing import Optional, List
from flask import request

from app.submission_store import is_valid_owner_id


class UserService:
    """Service for resolving the current user."""

    def __init__(self, admin_user_ids: List[str]):
        self.admin_user_ids = admin_user_ids

    def get_current_user_id(self) -> Optional[str]:
        """Get the current user ID from cookies; malformed ids count as none."""
        uid = (request.cookies.get("uid") or "").strip()
        if not is_valid_owner_id(uid):
            return None
        return uid

    def is_authenticated(self) -> bool:
        """Check if the current user is authenticated."""
        return bool(self.get_current_user_id())

    def is_admin_user(self, uid: str) -> bool:
        """Check if the user is an admin based on configuration."""
        return uid.strip() in self.admin_user_ids

    def require_auth_json(self) -> tuple[Optional[str], Optional[dict]]:
        """Require authentication for JSON endpoints, return error if not authenticated."""
        uid = self.get_current_user_id()
        if not uid:
            return None, {"error": "Login required", "message": "Please sign in to continue."}
        return uid, None
