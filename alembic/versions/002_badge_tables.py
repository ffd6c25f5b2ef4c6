"""Badge tables.

Creates badge_definitions, student_badges, badge_policies and
badge_eligibility_cache.

Revision ID: 002_badge_tables
Revises: 001_profile_tables
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_badge_tables"
down_revision: str | None = "001_profile_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Badge Definitions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_definitions (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(512),
            color VARCHAR(32),
            category VARCHAR(64),
            criteria TEXT,
            rarity VARCHAR(16) NOT NULL DEFAULT 'COMMON'
                CHECK (rarity IN ('COMMON', 'UNCOMMON', 'RARE', 'EPIC', 'LEGENDARY')),
            created_by VARCHAR(64) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_badge_definitions_category
        ON badge_definitions(category)
    """)

    # --- Student Badges (append-only) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS student_badges (
            id VARCHAR(36) PRIMARY KEY,
            student_id VARCHAR(64) NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
            badge_id VARCHAR(36) NOT NULL REFERENCES badge_definitions(id),
            awarded_by VARCHAR(64) NOT NULL,
            awarded_by_name VARCHAR(128),
            reason TEXT NOT NULL,
            project_id VARCHAR(64),
            event_id VARCHAR(64),
            awarded_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_student_badges_student
        ON student_badges(student_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_student_badges_badge
        ON student_badges(badge_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_student_badges_awarded_by
        ON student_badges(awarded_by, awarded_at DESC)
    """)

    # --- Badge Policies ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_policies (
            id VARCHAR(36) PRIMARY KEY,
            college_id VARCHAR(64) UNIQUE NOT NULL,
            department_id VARCHAR(64),
            event_creation_required INTEGER NOT NULL DEFAULT 8,
            category_diversity_min INTEGER NOT NULL DEFAULT 4,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Eligibility Cache ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_eligibility_cache (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) UNIQUE NOT NULL,
            can_create BOOLEAN NOT NULL DEFAULT false,
            badge_count INTEGER NOT NULL DEFAULT 0,
            categories JSONB NOT NULL DEFAULT '[]',
            required_badges INTEGER NOT NULL,
            required_categories INTEGER NOT NULL,
            last_checked TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ NOT NULL
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS badge_eligibility_cache CASCADE")
    op.execute("DROP TABLE IF EXISTS badge_policies CASCADE")
    op.execute("DROP TABLE IF EXISTS student_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badge_definitions CASCADE")
