"""
Factory for creating user management module.
"""
from typing import List
from .services import UserService


def create_user_management_module(admin_user_ids: List[str]) -> dict:
    """Create user management module.

    Args:
        admin_user_ids: List of admin user IDs

    Returns:
        Dictionary containing the service
    """
    return {
        "service": UserService(admin_user_ids)
    }
