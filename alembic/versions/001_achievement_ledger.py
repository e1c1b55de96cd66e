"""Achievement ledger tables.

Creates the profile tables this service reads (institutes, groups, users,
user_settings, refresh_sessions) when they do not exist yet, plus the
catalog, issued_achievements, award_acknowledgments and
achievement_operations tables.

Revision ID: 001_achievement_ledger
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_achievement_ledger"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profile store ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS institutes (
            id SERIAL PRIMARY KEY,
            name VARCHAR(256) NOT NULL
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS groups (
            id SERIAL PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            institute_id INTEGER NOT NULL REFERENCES institutes(id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(36) PRIMARY KEY,
            first_name VARCHAR(64) NOT NULL,
            last_name VARCHAR(64) NOT NULL,
            patronymic VARCHAR(64),
            avatar TEXT,
            role VARCHAR(16) NOT NULL DEFAULT 'student',
            is_banned BOOLEAN NOT NULL DEFAULT false,
            balance INTEGER NOT NULL DEFAULT 0,
            group_id INTEGER REFERENCES groups(id),
            institute_id INTEGER REFERENCES institutes(id),
            vk_id VARCHAR(32),
            tg_id VARCHAR(32),
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_users_group ON users(group_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_users_institute ON users(institute_id)")
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_users_active_students_balance
        ON users(balance DESC)
        WHERE role = 'student' AND is_banned = false
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_settings (
            user_id VARCHAR(36) PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            is_visible_in_top BOOLEAN NOT NULL DEFAULT true,
            receive_tg_achievement_notifications BOOLEAN NOT NULL DEFAULT true,
            receive_vk_achievement_notifications BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS refresh_sessions (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            refresh_token VARCHAR(36) NOT NULL,
            user_agent VARCHAR(512),
            expires_at TIMESTAMPTZ NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_refresh_sessions_expires
        ON refresh_sessions(expires_at)
    """)

    # --- Catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            type VARCHAR(32) NOT NULL,
            category VARCHAR(32) NOT NULL,
            rarity VARCHAR(16) NOT NULL,
            reward INTEGER NOT NULL CHECK (reward >= 0),
            hidden_icon_path VARCHAR(256) NOT NULL,
            opened_icon_path VARCHAR(256) NOT NULL,
            sputnik_requirement TEXT NOT NULL,
            student_requirement TEXT NOT NULL,
            hint TEXT,
            rofl_description TEXT
        )
    """)

    # --- Awards ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS issued_achievements (
            id VARCHAR(36) PRIMARY KEY,
            achievement_id VARCHAR(36) NOT NULL REFERENCES achievements(id),
            issuer_id VARCHAR(36) NOT NULL REFERENCES users(id),
            student_id VARCHAR(36) NOT NULL REFERENCES users(id),
            reward INTEGER NOT NULL CHECK (reward >= 0),
            is_canceled BOOLEAN NOT NULL DEFAULT false,
            cancellation_reason VARCHAR(256),
            canceler_id VARCHAR(36) REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CHECK (is_canceled = (canceler_id IS NOT NULL))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_issued_achievements_student
        ON issued_achievements(student_id, created_at DESC)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_issued_achievements_active
        ON issued_achievements(student_id)
        WHERE is_canceled = false
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS award_acknowledgments (
            issued_achievement_id VARCHAR(36) PRIMARY KEY REFERENCES issued_achievements(id),
            user_id VARCHAR(36) NOT NULL REFERENCES users(id),
            is_seen BOOLEAN NOT NULL DEFAULT false,
            seen_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_award_ack_unseen
        ON award_acknowledgments(user_id)
        WHERE is_seen = false
    """)

    # --- Audit ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievement_operations (
            id VARCHAR(36) PRIMARY KEY,
            type VARCHAR(16) NOT NULL CHECK (type IN ('issue', 'cancel')),
            actor_id VARCHAR(36) NOT NULL REFERENCES users(id),
            issued_achievement_id VARCHAR(36) NOT NULL REFERENCES issued_achievements(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_achievement_operations_created
        ON achievement_operations(created_at DESC)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_achievement_operations_award
        ON achievement_operations(issued_achievement_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_achievement_operations_actor
        ON achievement_operations(actor_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS achievement_operations CASCADE")
    op.execute("DROP TABLE IF EXISTS award_acknowledgments CASCADE")
    op.execute("DROP TABLE IF EXISTS issued_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS achievements CASCADE")
