"""Event pipeline schema - events, feed, notifications, automations, assignments.

Revision ID: 001
Revises: None
Create Date: 2026-10-16

This migration creates the tables used by the event pipeline:
- org_events: append-only tenant event log
- activity_feed: one feed entry per event (unique event_id)
- notifications: per-user in-app notifications
- automations: tenant-defined rules
- automation_runs: idempotency gate, unique (automation_id, event_id)
- staff_members and assignments: read by the pipeline, written by create_assignment
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create org_events table
    op.execute("""
        CREATE TABLE IF NOT EXISTS org_events (
            id UUID PRIMARY KEY,
            org_id VARCHAR(64) NOT NULL,
            actor_user_id VARCHAR(64),
            event_type VARCHAR(100) NOT NULL,
            entity_type VARCHAR(50),
            entity_id VARCHAR(64),
            payload JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_org_events_org_id ON org_events(org_id);
        CREATE INDEX IF NOT EXISTS ix_org_events_event_type ON org_events(event_type);
        CREATE INDEX IF NOT EXISTS ix_org_events_entity_id ON org_events(entity_id);
        CREATE INDEX IF NOT EXISTS ix_org_events_created_at ON org_events(created_at);
    """)

    # Create activity_feed table
    op.execute("""
        CREATE TABLE IF NOT EXISTS activity_feed (
            id UUID PRIMARY KEY,
            org_id VARCHAR(64) NOT NULL,
            actor_user_id VARCHAR(64),
            event_id UUID NOT NULL UNIQUE REFERENCES org_events(id),
            feed_type VARCHAR(100) NOT NULL,
            message VARCHAR(1000) NOT NULL,
            href VARCHAR(500),
            meta JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_activity_feed_org_id ON activity_feed(org_id);
        CREATE INDEX IF NOT EXISTS ix_activity_feed_created_at ON activity_feed(created_at);
    """)

    # Create automations table
    op.execute("""
        CREATE TABLE IF NOT EXISTS automations (
            id UUID PRIMARY KEY,
            org_id VARCHAR(64) NOT NULL,
            name VARCHAR(200) NOT NULL DEFAULT '',
            enabled BOOLEAN NOT NULL DEFAULT TRUE,
            trigger_event VARCHAR(100) NOT NULL,
            conditions JSONB NOT NULL DEFAULT '[]'::jsonb,
            actions JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_automations_org_id ON automations(org_id);
        CREATE INDEX IF NOT EXISTS ix_automations_enabled ON automations(enabled);
        CREATE INDEX IF NOT EXISTS ix_automations_trigger_event ON automations(trigger_event);
    """)

    # Create automation_runs table (idempotency gate)
    op.execute("""
        CREATE TABLE IF NOT EXISTS automation_runs (
            id UUID PRIMARY KEY,
            org_id VARCHAR(64) NOT NULL,
            automation_id UUID NOT NULL REFERENCES automations(id),
            event_id UUID NOT NULL REFERENCES org_events(id),
            status VARCHAR(20) NOT NULL DEFAULT 'success',
            error VARCHAR(1000),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT uq_automation_runs_automation_event UNIQUE (automation_id, event_id)
        );
        CREATE INDEX IF NOT EXISTS ix_automation_runs_org_id ON automation_runs(org_id);
        CREATE INDEX IF NOT EXISTS ix_automation_runs_automation_id ON automation_runs(automation_id);
        CREATE INDEX IF NOT EXISTS ix_automation_runs_event_id ON automation_runs(event_id);
    """)

    # Create notifications table
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id UUID PRIMARY KEY,
            org_id VARCHAR(64) NOT NULL,
            user_id VARCHAR(64) NOT NULL,
            title VARCHAR(200) NOT NULL,
            body VARCHAR(2000) NOT NULL DEFAULT '',
            severity VARCHAR(20) NOT NULL DEFAULT 'info',
            href VARCHAR(500),
            meta JSONB NOT NULL DEFAULT '{}'::jsonb,
            source VARCHAR(20) NOT NULL DEFAULT 'baseline',
            event_id UUID REFERENCES org_events(id),
            automation_id UUID REFERENCES automations(id),
            read_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_notifications_org_id ON notifications(org_id);
        CREATE INDEX IF NOT EXISTS ix_notifications_user_id ON notifications(user_id);
        CREATE INDEX IF NOT EXISTS ix_notifications_event_id ON notifications(event_id);
    """)

    # Create staff_members table
    op.execute("""
        CREATE TABLE IF NOT EXISTS staff_members (
            id VARCHAR(64) PRIMARY KEY,
            org_id VARCHAR(64) NOT NULL,
            full_name VARCHAR(200),
            auth_user_id VARCHAR(64),
            is_manager BOOLEAN NOT NULL DEFAULT FALSE,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_staff_members_org_id ON staff_members(org_id);
    """)

    # Create assignments table
    op.execute("""
        CREATE TABLE IF NOT EXISTS assignments (
            id UUID PRIMARY KEY,
            org_id VARCHAR(64) NOT NULL,
            staff_id VARCHAR(64) NOT NULL,
            facility_id VARCHAR(64),
            competency_id VARCHAR(64) NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'assigned',
            due_date DATE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_assignments_org_id ON assignments(org_id);
        CREATE INDEX IF NOT EXISTS ix_assignments_staff_id ON assignments(staff_id);
        CREATE INDEX IF NOT EXISTS ix_assignments_status ON assignments(status);
        CREATE INDEX IF NOT EXISTS ix_assignments_due_date ON assignments(due_date);
    """)


def downgrade() -> None:
    # Drop tables in reverse order
    op.execute("DROP TABLE IF EXISTS assignments CASCADE")
    op.execute("DROP TABLE IF EXISTS staff_members CASCADE")
    op.execute("DROP TABLE IF EXISTS notifications CASCADE")
    op.execute("DROP TABLE IF EXISTS automation_runs CASCADE")
    op.execute("DROP TABLE IF EXISTS automations CASCADE")
    op.execute("DROP TABLE IF EXISTS activity_feed CASCADE")
    op.execute("DROP TABLE IF EXISTS org_events CASCADE")
