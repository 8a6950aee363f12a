"""
Partner Sync - Identity Engine Module
=====================================
Resolution of onboarding Partners to the shared User identity.

Provides:
- Phone / email matching against existing Users
- Deterministic User creation for unmatched Partners
"""

from partner_sync.identity.resolve_users import (
    UserResolver,
    UserResolution,
    generate_password_hash,
)

__all__ = [
    'UserResolver',
    'UserResolution',
    'generate_password_hash',
]
