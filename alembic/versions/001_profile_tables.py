"""Profile tables.

Creates profiles and the records they own (personal_projects,
publications, experiences).

Revision ID: 001_profile_tables
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_profile_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) UNIQUE NOT NULL,
            name VARCHAR(100),
            bio TEXT,
            skills JSONB NOT NULL DEFAULT '[]',
            expertise JSONB NOT NULL DEFAULT '[]',
            linked_in VARCHAR(512),
            github VARCHAR(512),
            twitter VARCHAR(512),
            resume_url VARCHAR(512),
            contact_info VARCHAR(500),
            phone_number VARCHAR(20),
            alternate_email VARCHAR(320),
            department VARCHAR(100),
            year INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Personal Projects ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS personal_projects (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            description TEXT NOT NULL,
            github VARCHAR(512),
            demo_link VARCHAR(512),
            image VARCHAR(512),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_personal_projects_user
        ON personal_projects(user_id, created_at DESC)
    """)

    # --- Publications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS publications (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
            title VARCHAR(300) NOT NULL,
            year INTEGER NOT NULL,
            link VARCHAR(512),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_publications_user
        ON publications(user_id, year DESC)
    """)

    # --- Experiences ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS experiences (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES profiles(user_id) ON DELETE CASCADE,
            area VARCHAR(100) NOT NULL,
            level VARCHAR(16) NOT NULL
                CHECK (level IN ('Beginner', 'Intermediate', 'Advanced', 'Expert')),
            years_exp DOUBLE PRECISION CHECK (years_exp >= 0 AND years_exp <= 50),
            description TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_experiences_user
        ON experiences(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS experiences CASCADE")
    op.execute("DROP TABLE IF EXISTS publications CASCADE")
    op.execute("DROP TABLE IF EXISTS personal_projects CASCADE")
    op.execute("DROP TABLE IF EXISTS profiles CASCADE")
