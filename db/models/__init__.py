"""
Database models package.

Only the Better Auth tables written by the migration are declared here:
    from db.models import User, Account
"""

from db.models.auth import Account, User

__all__ = ["Account", "User"]
