"""Database schema for GigFlow SQLite storage.

Contains:
- Schema DDL (SCHEMA)
- Schema version tracking (SCHEMA_VERSION)
- Database initialization (init_db)
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Users (identity and display fields)
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- Gigs (job listings)
CREATE TABLE IF NOT EXISTS gigs (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    budget REAL NOT NULL CHECK (budget >= 1),
    deadline TEXT NOT NULL,
    skills_required TEXT NOT NULL DEFAULT '[]',
    category TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'open',
    hired_freelancer_id TEXT,
    accepted_bid_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK ((hired_freelancer_id IS NULL) = (accepted_bid_id IS NULL))
);
CREATE INDEX IF NOT EXISTS idx_gigs_owner ON gigs(owner_id, created_at);
CREATE INDEX IF NOT EXISTS idx_gigs_category_status ON gigs(category, status);
CREATE INDEX IF NOT EXISTS idx_gigs_budget ON gigs(budget);

-- Bids (one per bidder per gig)
CREATE TABLE IF NOT EXISTS bids (
    id TEXT PRIMARY KEY,
    gig_id TEXT NOT NULL REFERENCES gigs(id),
    bidder_id TEXT NOT NULL,
    amount REAL NOT NULL CHECK (amount >= 1),
    proposal TEXT NOT NULL,
    delivery_time INTEGER NOT NULL CHECK (delivery_time >= 1),
    status TEXT NOT NULL DEFAULT 'pending',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (gig_id, bidder_id)
);
CREATE INDEX IF NOT EXISTS idx_bids_gig_status ON bids(gig_id, status);
CREATE INDEX IF NOT EXISTS idx_bids_bidder ON bids(bidder_id, created_at);
-- At most one accepted bid per gig
CREATE UNIQUE INDEX IF NOT EXISTS idx_bids_one_accepted
    ON bids(gig_id) WHERE status = 'accepted';

-- Notifications (per-user inbox)
CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    message TEXT NOT NULL,
    data TEXT NOT NULL DEFAULT '{}',
    read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_notifications_user
    ON notifications(user_id, read, created_at);
"""


def init_db(conn: sqlite3.Connection) -> None:
    """Create tables and record the schema version."""
    conn.executescript(SCHEMA)
    row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
    current = row["version"] if row and row["version"] is not None else None
    if current is None:
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        logger.info(f"Initialized schema version {SCHEMA_VERSION}")
    elif current < SCHEMA_VERSION:
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        logger.info(f"Migrated schema from {current} to {SCHEMA_VERSION}")
    elif current > SCHEMA_VERSION:
        logger.warning(
            f"Database schema version {current} is newer than supported {SCHEMA_VERSION}"
        )
