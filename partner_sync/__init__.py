"""
Partner Sync
============
Keeps the onboarding Partner record, the shared User identity and the
admin-facing ServicePartner profile converged to one linked graph.
"""

__version__ = "1.0.0"
