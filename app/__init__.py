"""
Hackathon Portal
Application intake and reviewer assignment for a hackathon.

Architecture:
- PostgreSQL: all state (users, applications, review ledger, settings)
- Review assignment: batch rebalance (super admin) and pull-next (reviewers)
"""

__version__ = "1.0.0"
