"""add session requests

Revision ID: 8c41d2e05a7f
Revises: 3f9a1c27b6d4
Create Date: 2026-10-19 15:30:00.000000

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8c41d2e05a7f'
down_revision: Union[str, Sequence[str], None] = '3f9a1c27b6d4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
        CREATE TABLE IF NOT EXISTS session_requests (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            patient_id UUID NOT NULL REFERENCES profiles(id),
            counsellor_id UUID NOT NULL REFERENCES counsellors(id),
            assignment_id UUID NOT NULL REFERENCES counsellor_assignments(id),
            session_type VARCHAR(10) NOT NULL CHECK (session_type IN ('video', 'audio', 'chat')),
            status VARCHAR(20) NOT NULL DEFAULT 'requested' CHECK (status IN ('requested', 'confirmed', 'completed', 'cancelled', 'no_show')),
            scheduled_for TIMESTAMP WITH TIME ZONE NOT NULL,
            duration_minutes INTEGER NOT NULL DEFAULT 60 CHECK (duration_minutes > 0),
            notes TEXT,
            meeting_link VARCHAR(500),
            confirmed_at TIMESTAMP WITH TIME ZONE,
            completed_at TIMESTAMP WITH TIME ZONE,
            cancelled_at TIMESTAMP WITH TIME ZONE,
            cancelled_by UUID REFERENCES profiles(id),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute('CREATE INDEX IF NOT EXISTS idx_session_requests_counsellor_time ON session_requests(counsellor_id, scheduled_for)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_session_requests_assignment_status ON session_requests(assignment_id, status)')

    op.execute('''
        CREATE TRIGGER update_session_requests_updated_at
            BEFORE UPDATE ON session_requests
            FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
    ''')


def downgrade() -> None:
    """Downgrade schema."""
    op.execute('DROP TABLE IF EXISTS session_requests CASCADE')
