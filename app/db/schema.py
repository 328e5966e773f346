"""
Schema bootstrap - idempotent DDL for every table the portal uses.

Tables:
- users                 accounts (hacker / admin / super_admin)
- applications          one per user; reviews_assigned is trigger-maintained
- application_reviews   assignment ledger, unique per (application_id, admin_id)
- settings              key -> JSON document (quota, workforce registry, questions, scan types)
- scans                 event check-ins and claims, unique per (user_id, scan_type)

The DDL is portable between PostgreSQL and SQLite; only the trigger that keeps
applications.reviews_assigned equal to the number of ledger rows differs.
"""

import logging

from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


TABLES = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        external_id TEXT UNIQUE,
        email TEXT NOT NULL UNIQUE,
        role TEXT NOT NULL DEFAULT 'hacker'
            CHECK (role IN ('hacker', 'admin', 'super_admin')),
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS applications (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        status TEXT NOT NULL DEFAULT 'draft'
            CHECK (status IN ('draft', 'submitted', 'accepted', 'rejected', 'waitlisted')),
        first_name TEXT,
        last_name TEXT,
        phone_e164 TEXT,
        age INTEGER,
        country_of_residence TEXT,
        university TEXT,
        major TEXT,
        level_of_study TEXT,
        hackathons_attended_count INTEGER,
        software_experience_level TEXT,
        heard_about TEXT,
        shirt_size TEXT,
        dietary_restrictions TEXT NOT NULL DEFAULT '[]',
        accommodations TEXT,
        github TEXT,
        linkedin TEXT,
        website TEXT,
        short_answer_responses TEXT NOT NULL DEFAULT '{}',
        ack_application BOOLEAN NOT NULL DEFAULT FALSE,
        ack_code_of_conduct BOOLEAN NOT NULL DEFAULT FALSE,
        ack_privacy BOOLEAN NOT NULL DEFAULT FALSE,
        reviews_assigned INTEGER NOT NULL DEFAULT 0,
        submitted_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS application_reviews (
        id TEXT PRIMARY KEY,
        application_id TEXT NOT NULL REFERENCES applications(id) ON DELETE CASCADE,
        admin_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        vote TEXT CHECK (vote IS NULL OR vote IN ('accept', 'reject', 'waitlist')),
        notes TEXT,
        assigned_at TIMESTAMPTZ NOT NULL,
        reviewed_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL,
        UNIQUE (application_id, admin_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scans (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        scan_type TEXT NOT NULL,
        scanned_by TEXT NOT NULL REFERENCES users(id),
        scanned_at TIMESTAMPTZ NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        UNIQUE (user_id, scan_type)
    )
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_applications_review_queue "
    "ON applications (status, reviews_assigned, submitted_at)",
    "CREATE INDEX IF NOT EXISTS idx_applications_created_id ON applications (created_at, id)",
    "CREATE INDEX IF NOT EXISTS idx_reviews_admin_vote ON application_reviews (admin_id, vote)",
    "CREATE INDEX IF NOT EXISTS idx_users_role ON users (role, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_scans_user_time ON scans (user_id, scanned_at)",
    "CREATE INDEX IF NOT EXISTS idx_scans_type ON scans (scan_type)",
]

POSTGRES_TRIGGERS = [
    """
    CREATE OR REPLACE FUNCTION sync_reviews_assigned() RETURNS TRIGGER AS $$
    BEGIN
        IF TG_OP = 'INSERT' THEN
            UPDATE applications SET reviews_assigned = reviews_assigned + 1
            WHERE id = NEW.application_id;
        ELSIF TG_OP = 'DELETE' THEN
            UPDATE applications SET reviews_assigned = reviews_assigned - 1
            WHERE id = OLD.application_id;
        END IF;
        RETURN NULL;
    END;
    $$ LANGUAGE plpgsql
    """,
    "DROP TRIGGER IF EXISTS trg_reviews_assigned ON application_reviews",
    """
    CREATE TRIGGER trg_reviews_assigned
    AFTER INSERT OR DELETE ON application_reviews
    FOR EACH ROW EXECUTE FUNCTION sync_reviews_assigned()
    """,
]

SQLITE_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_reviews_assigned_insert
    AFTER INSERT ON application_reviews
    BEGIN
        UPDATE applications SET reviews_assigned = reviews_assigned + 1
        WHERE id = NEW.application_id;
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_reviews_assigned_delete
    AFTER DELETE ON application_reviews
    BEGIN
        UPDATE applications SET reviews_assigned = reviews_assigned - 1
        WHERE id = OLD.application_id;
    END
    """,
]


def init_schema(engine: Engine) -> None:
    """Create tables, indexes and the reviews_assigned trigger if missing."""
    triggers = POSTGRES_TRIGGERS if engine.dialect.name == "postgresql" else SQLITE_TRIGGERS

    # exec_driver_sql: plpgsql bodies must not go through bind-param parsing
    with engine.begin() as conn:
        for statement in TABLES + INDEXES + triggers:
            conn.exec_driver_sql(statement)

    logger.info(f"Schema ready on {engine.dialect.name}")
