"""Baseline migration - reference data, parties, tickets, activity log, jobs

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates the full ticketing schema. Reference rows are loaded separately
with `python -m bcare.cli seed-reference`.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


LOOKUP_TABLES = (
    'customer_statuses',
    'employee_statuses',
    'priorities',
    'sources',
    'activity_types',
    'sender_types',
    'roles',
    'divisions',
    'channels',
)


def upgrade() -> None:
    """Create ticketing tables."""

    # ==========================================================================
    # Code/name lookups
    # ==========================================================================
    for table in LOOKUP_TABLES:
        op.execute(f'''
            CREATE TABLE {table} (
                id SERIAL PRIMARY KEY,
                code VARCHAR(30) UNIQUE NOT NULL,
                name VARCHAR(100) NOT NULL
            )
        ''')

    op.execute('''
        CREATE TABLE complaint_categories (
            id SERIAL PRIMARY KEY,
            complaint_code VARCHAR(30) UNIQUE NOT NULL,
            complaint_name VARCHAR(200) NOT NULL
        )
    ''')

    op.execute('''
        CREATE TABLE terminals (
            id SERIAL PRIMARY KEY,
            terminal_code VARCHAR(30) UNIQUE NOT NULL,
            terminal_type VARCHAR(30),
            location VARCHAR(200),
            channel_id INTEGER REFERENCES channels(id) ON DELETE SET NULL
        )
    ''')

    # ==========================================================================
    # Complaint policies (SLA rules)
    # ==========================================================================
    op.execute('''
        CREATE TABLE complaint_policies (
            id SERIAL PRIMARY KEY,
            service VARCHAR(100),
            complaint_id INTEGER NOT NULL REFERENCES complaint_categories(id) ON DELETE CASCADE,
            channel_id INTEGER REFERENCES channels(id) ON DELETE SET NULL,
            sla INTEGER NOT NULL,
            uic_id INTEGER REFERENCES divisions(id) ON DELETE SET NULL,
            description TEXT
        )
    ''')
    op.execute(
        'CREATE INDEX idx_policies_complaint_channel ON complaint_policies(complaint_id, channel_id)'
    )

    # ==========================================================================
    # Parties
    # ==========================================================================
    op.execute('''
        CREATE TABLE customers (
            id SERIAL PRIMARY KEY,
            full_name VARCHAR(200) NOT NULL,
            email VARCHAR(255),
            phone_number VARCHAR(30),
            cif VARCHAR(30) UNIQUE,
            fcm_token VARCHAR(500),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    op.execute('''
        CREATE TABLE employees (
            id SERIAL PRIMARY KEY,
            npp VARCHAR(30) UNIQUE NOT NULL,
            full_name VARCHAR(200) NOT NULL,
            email VARCHAR(255),
            role_id INTEGER NOT NULL REFERENCES roles(id),
            division_id INTEGER NOT NULL REFERENCES divisions(id),
            is_active BOOLEAN NOT NULL DEFAULT true,
            fcm_token VARCHAR(500),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_employees_division_active ON employees(division_id, is_active)')

    # ==========================================================================
    # Tickets
    # ==========================================================================
    op.execute('''
        CREATE TABLE tickets (
            id SERIAL PRIMARY KEY,
            ticket_number VARCHAR(32) UNIQUE NOT NULL,
            description TEXT NOT NULL,
            customer_id INTEGER NOT NULL REFERENCES customers(id),
            responsible_employee_id INTEGER REFERENCES employees(id) ON DELETE SET NULL,
            customer_status_id INTEGER NOT NULL REFERENCES customer_statuses(id),
            employee_status_id INTEGER NOT NULL REFERENCES employee_statuses(id),
            priority_id INTEGER NOT NULL REFERENCES priorities(id),
            issue_channel_id INTEGER NOT NULL REFERENCES channels(id),
            intake_source_id INTEGER NOT NULL REFERENCES sources(id),
            complaint_id INTEGER NOT NULL REFERENCES complaint_categories(id),
            policy_id INTEGER REFERENCES complaint_policies(id) ON DELETE SET NULL,
            terminal_id INTEGER REFERENCES terminals(id) ON DELETE SET NULL,
            transaction_date DATE,
            amount NUMERIC(15, 2),
            record TEXT,
            reason TEXT,
            solution TEXT,
            division_notes JSONB,
            committed_due_at TIMESTAMPTZ NOT NULL,
            closed_time TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            delete_at TIMESTAMPTZ,
            delete_by INTEGER REFERENCES employees(id) ON DELETE SET NULL
        )
    ''')
    op.execute('CREATE INDEX idx_tickets_created_at ON tickets(created_at)')
    op.execute('CREATE INDEX idx_tickets_customer ON tickets(customer_id, created_at)')
    op.execute('CREATE INDEX idx_tickets_due_open ON tickets(committed_due_at, closed_time)')

    # ==========================================================================
    # Activity log + structured status events
    # ==========================================================================
    op.execute('''
        CREATE TABLE ticket_activities (
            id SERIAL PRIMARY KEY,
            ticket_id INTEGER NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
            activity_type_id INTEGER NOT NULL REFERENCES activity_types(id),
            sender_type_id INTEGER NOT NULL REFERENCES sender_types(id),
            sender_id INTEGER,
            content TEXT NOT NULL,
            activity_time TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute(
        'CREATE INDEX idx_ticket_activities_ticket_time ON ticket_activities(ticket_id, activity_time)'
    )

    op.execute('''
        CREATE TABLE ticket_status_events (
            id SERIAL PRIMARY KEY,
            ticket_id INTEGER NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
            activity_id INTEGER UNIQUE REFERENCES ticket_activities(id) ON DELETE SET NULL,
            action_type VARCHAR(20) NOT NULL,
            trigger_action VARCHAR(20),
            from_customer_status VARCHAR(30),
            to_customer_status VARCHAR(30) NOT NULL,
            from_employee_status VARCHAR(30),
            to_employee_status VARCHAR(30) NOT NULL,
            actor_type VARCHAR(20) NOT NULL,
            actor_id INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute(
        'CREATE INDEX idx_ticket_status_events_ticket_created '
        'ON ticket_status_events(ticket_id, created_at)'
    )

    # ==========================================================================
    # Feedback
    # ==========================================================================
    op.execute('''
        CREATE TABLE ticket_feedback (
            id SERIAL PRIMARY KEY,
            ticket_id INTEGER UNIQUE NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
            customer_id INTEGER NOT NULL REFERENCES customers(id),
            score INTEGER NOT NULL,
            comment TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_ticket_feedback_score CHECK (score BETWEEN 1 AND 5)
        )
    ''')

    # ==========================================================================
    # Jobs (outbox)
    # ==========================================================================
    op.execute('''
        CREATE TABLE jobs (
            id SERIAL PRIMARY KEY,
            job_type VARCHAR(50) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}'::jsonb,
            run_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            attempts INTEGER NOT NULL DEFAULT 0,
            max_attempts INTEGER NOT NULL DEFAULT 3,
            last_error TEXT,
            idempotency_key VARCHAR(200),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            completed_at TIMESTAMPTZ
        )
    ''')
    op.execute('CREATE INDEX idx_jobs_pending ON jobs(status, run_at)')
    op.execute(
        'CREATE UNIQUE INDEX uq_job_idempotency ON jobs(idempotency_key) '
        'WHERE idempotency_key IS NOT NULL'
    )


def downgrade() -> None:
    """Drop ticketing tables."""
    for table in (
        'jobs',
        'ticket_feedback',
        'ticket_status_events',
        'ticket_activities',
        'tickets',
        'employees',
        'customers',
        'complaint_policies',
        'terminals',
        'complaint_categories',
        *reversed(LOOKUP_TABLES),
    ):
        op.execute(f'DROP TABLE IF EXISTS {table}')
