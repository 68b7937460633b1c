"""001 – Initial schema: users, sessions, leave requests, public holidays.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["employee", "hr", "management"]),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name           VARCHAR(150) NOT NULL,
            email          VARCHAR(255) NOT NULL UNIQUE,
            password_hash  VARCHAR(255) NOT NULL,
            role           user_role    NOT NULL DEFAULT 'employee',
            leave_balance  INTEGER      NOT NULL DEFAULT 2,
            joined_at      TIMESTAMPTZ  DEFAULT NOW(),
            created_at     TIMESTAMPTZ  DEFAULT NOW(),
            updated_at     TIMESTAMPTZ  DEFAULT NOW(),
            CONSTRAINT ck_users_leave_balance_non_negative CHECK (leave_balance >= 0)
        )
    """)
    op.execute("CREATE INDEX ix_users_email ON users(email)")
    op.execute("CREATE INDEX ix_users_role ON users(role)")

    # ── 2. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash  VARCHAR(512) NOT NULL,
            expires_at  TIMESTAMPTZ NOT NULL,
            is_revoked  BOOLEAN DEFAULT FALSE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_user_sessions_token_hash ON user_sessions(token_hash)")

    # ── 3. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            applicant_id      UUID NOT NULL REFERENCES users(id),
            leave_type        VARCHAR(50) NOT NULL,
            start_date        DATE NOT NULL,
            end_date          DATE NOT NULL,
            working_days      INTEGER NOT NULL,
            comment           TEXT,
            status            leave_status NOT NULL DEFAULT 'pending',
            approver_id       UUID REFERENCES users(id),
            rejected_by       user_role,
            system_remarks    TEXT,
            reviewer_remarks  TEXT,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_requests_date_order CHECK (start_date <= end_date),
            CONSTRAINT ck_leave_requests_working_days_positive CHECK (working_days > 0)
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_applicant_dates "
        "ON leave_requests(applicant_id, start_date, end_date)"
    )
    op.execute(
        "CREATE INDEX ix_leave_requests_status_dates "
        "ON leave_requests(status, start_date, end_date)"
    )

    # ── 4. public_holidays ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE public_holidays (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            date        DATE NOT NULL,
            name        VARCHAR(150) NOT NULL,
            created_by  UUID REFERENCES users(id),
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_public_holiday_date_name UNIQUE (date, name)
        )
    """)
    op.execute("CREATE INDEX ix_public_holidays_date ON public_holidays(date)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "public_holidays",
        "leave_requests",
        "user_sessions",
        "users",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop enum types
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
