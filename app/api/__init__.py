"""
API module - FastAPI routers and endpoint definitions.

- auth: current user
- applications: applicant draft / submit
- admin: application browsing, review queue, voting, event scans
- superadmin: rebalance, decisions, settings, workforce

Usage:
    from app.api.routes import api_router
    app.include_router(api_router, prefix="/api")
"""
