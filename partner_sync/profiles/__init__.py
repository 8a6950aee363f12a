from partner_sync.profiles.sync_profiles import (
    ProfileSynchronizer,
    ProfileSyncResult,
    SyncAction,
    merge_verification_documents,
)

__all__ = [
    'ProfileSynchronizer',
    'ProfileSyncResult',
    'SyncAction',
    'merge_verification_documents',
]
