"""001 – Initial schema: users, balances (both layouts), requests, overtime,
audit logs, notifications.

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-01-06 09:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["EMPLOYEE", "MANAGER", "ADMIN"]),
    ("leave_type", ["VACATION", "SICK", "PAID_LEAVE", "PERSONAL"]),
    ("request_status", ["PENDING", "APPROVED", "REJECTED"]),
    ("audit_action", ["CREATE", "UPDATE", "DELETE"]),
    ("audit_entity", ["REQUEST", "BALANCE", "OVERTIME"]),
    ("notification_type", ["info", "action_required", "approval", "alert"]),
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
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email       VARCHAR(255) NOT NULL UNIQUE,
            name        VARCHAR(200) NOT NULL,
            role        user_role NOT NULL DEFAULT 'EMPLOYEE',
            is_active   BOOLEAN NOT NULL DEFAULT TRUE,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # ── 2. time_off_balances (per-type layout) ───────────────────────────
    op.execute("""
        CREATE TABLE time_off_balances (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            year            INTEGER NOT NULL,
            leave_type      leave_type NOT NULL,
            total_days      NUMERIC(12, 6) NOT NULL DEFAULT 0,
            used_days       NUMERIC(12, 6) NOT NULL DEFAULT 0,
            remaining_days  NUMERIC(12, 6) NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_time_off_balance UNIQUE (user_id, year, leave_type)
        )
    """)

    # ── 3. user_balances (aggregated layout) ─────────────────────────────
    op.execute("""
        CREATE TABLE user_balances (
            id               UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id          UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            year             INTEGER NOT NULL,
            vacation_days    NUMERIC(12, 6) NOT NULL DEFAULT 0,
            sick_days        NUMERIC(12, 6) NOT NULL DEFAULT 0,
            paid_leave_days  NUMERIC(12, 6) NOT NULL DEFAULT 0,
            personal_days    NUMERIC(12, 6) NOT NULL DEFAULT 0,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_balance_year UNIQUE (user_id, year)
        )
    """)

    # ── 4. time_off_requests ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE time_off_requests (
            id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id       UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            leave_type    leave_type NOT NULL,
            start_date    DATE NOT NULL,
            end_date      DATE NOT NULL,
            working_days  INTEGER NOT NULL,
            status        request_status NOT NULL DEFAULT 'PENDING',
            reason        TEXT,
            reviewed_by   UUID REFERENCES users(id) ON DELETE SET NULL,
            reviewed_at   TIMESTAMPTZ,
            balance_year  INTEGER,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_time_off_requests_user_start "
        "ON time_off_requests (user_id, start_date)"
    )
    op.execute("CREATE INDEX ix_time_off_requests_status ON time_off_requests (status)")

    # ── 5. overtime_requests ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE overtime_requests (
            id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id       UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            hours         NUMERIC(6, 2) NOT NULL CHECK (hours > 0),
            request_date  DATE NOT NULL,
            month         INTEGER NOT NULL,
            year          INTEGER NOT NULL,
            status        request_status NOT NULL DEFAULT 'PENDING',
            notes         TEXT,
            reviewed_by   UUID REFERENCES users(id) ON DELETE SET NULL,
            reviewed_at   TIMESTAMPTZ,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_overtime_requests_user_year "
        "ON overtime_requests (user_id, year, month)"
    )

    # ── 6. audit_logs (no FK: entries outlive users) ─────────────────────
    op.execute("""
        CREATE TABLE audit_logs (
            id           UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id      UUID,
            action       audit_action NOT NULL,
            entity_type  audit_entity NOT NULL,
            entity_id    VARCHAR(100) NOT NULL,
            details      JSONB,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_logs_user_id ON audit_logs (user_id)")
    op.execute("CREATE INDEX ix_audit_logs_entity ON audit_logs (entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_logs_created_at ON audit_logs (created_at)")

    # ── 7. notifications ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            recipient_id  UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type          notification_type NOT NULL DEFAULT 'info',
            title         VARCHAR(200) NOT NULL,
            message       TEXT NOT NULL,
            entity_type   VARCHAR(50),
            entity_id     UUID,
            is_read       BOOLEAN NOT NULL DEFAULT FALSE,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_notifications_recipient ON notifications (recipient_id, is_read)"
    )


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "notifications",
        "audit_logs",
        "overtime_requests",
        "time_off_requests",
        "user_balances",
        "time_off_balances",
        "users",
    ]
    for table in tables:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
