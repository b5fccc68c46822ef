"""create matching schema

Revision ID: 3f9a1c27b6d4
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f9a1c27b6d4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIMESTAMPED_TABLES = ('profiles', 'counsellors', 'counsellor_assignments', 'conversations')


def upgrade() -> None:
    """Upgrade schema."""
    # Step 1: Extension and trigger function
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    op.execute('''
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ language 'plpgsql'
    ''')

    # Step 2: Create tables
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email VARCHAR(255) NOT NULL UNIQUE,
            full_name VARCHAR(255) NOT NULL,
            role VARCHAR(20) NOT NULL DEFAULT 'patient' CHECK (role IN ('patient', 'counsellor', 'admin')),
            gender VARCHAR(10) CHECK (gender IN ('male', 'female', 'other')),
            phone VARCHAR(50),
            date_of_birth DATE,
            emergency_contact VARCHAR(255),
            emergency_phone VARCHAR(50),
            profile_completed BOOLEAN NOT NULL DEFAULT FALSE,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS counsellors (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            profile_id UUID NOT NULL UNIQUE REFERENCES profiles(id),
            gender VARCHAR(10) NOT NULL CHECK (gender IN ('male', 'female', 'other')),
            status VARCHAR(20) NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'suspended', 'rejected')),
            is_available BOOLEAN NOT NULL DEFAULT TRUE,
            max_patients INTEGER NOT NULL DEFAULT 10 CHECK (max_patients >= 0),
            current_patients INTEGER NOT NULL DEFAULT 0,
            rating DOUBLE PRECISION NOT NULL DEFAULT 0,
            total_reviews INTEGER NOT NULL DEFAULT 0,
            specializations JSONB DEFAULT '[]'::jsonb,
            bio TEXT,
            approved_by UUID REFERENCES profiles(id),
            approved_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT ck_counsellors_capacity CHECK (current_patients >= 0 AND current_patients <= max_patients)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS counsellor_assignments (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            patient_id UUID NOT NULL REFERENCES profiles(id),
            counsellor_id UUID NOT NULL REFERENCES counsellors(id),
            status VARCHAR(20) NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'completed', 'cancelled')),
            assigned_by UUID REFERENCES profiles(id),
            assigned_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            completed_at TIMESTAMP WITH TIME ZONE,
            cancelled_at TIMESTAMP WITH TIME ZONE,
            notes TEXT,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS conversations (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            patient_id UUID NOT NULL REFERENCES profiles(id),
            counsellor_id UUID NOT NULL REFERENCES counsellors(id),
            counsellor_profile_id UUID NOT NULL REFERENCES profiles(id),
            assignment_id UUID UNIQUE REFERENCES counsellor_assignments(id),
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            last_message_at TIMESTAMP WITH TIME ZONE,
            message_count INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            conversation_id UUID NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            sender_id UUID NOT NULL REFERENCES profiles(id),
            content TEXT NOT NULL,
            message_type VARCHAR(20) NOT NULL DEFAULT 'text' CHECK (message_type IN ('text', 'image', 'file', 'system')),
            sequence INTEGER NOT NULL,
            is_read BOOLEAN NOT NULL DEFAULT FALSE,
            read_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT uq_messages_sequence UNIQUE (conversation_id, sequence)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id UUID NOT NULL REFERENCES profiles(id),
            title VARCHAR(255) NOT NULL,
            message TEXT NOT NULL,
            type VARCHAR(20) NOT NULL DEFAULT 'system' CHECK (type IN ('appointment', 'assignment', 'message', 'wellness', 'system', 'reminder')),
            is_read BOOLEAN NOT NULL DEFAULT FALSE,
            action_url VARCHAR(500),
            read_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    # Step 3: Create indexes
    op.execute("CREATE UNIQUE INDEX IF NOT EXISTS uq_assignments_active_patient ON counsellor_assignments(patient_id) WHERE status = 'active'")
    op.execute('CREATE INDEX IF NOT EXISTS idx_assignments_counsellor_status ON counsellor_assignments(counsellor_id, status)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_counsellors_pool ON counsellors(gender, status, is_available)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_messages_unread ON messages(conversation_id, is_read)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_notifications_user_unread ON notifications(user_id, is_read)')

    # Step 4: Create triggers
    for table in TIMESTAMPED_TABLES:
        op.execute(f'''
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
        ''')


def downgrade() -> None:
    """Downgrade schema."""
    for table in ('notifications', 'messages', 'conversations', 'counsellor_assignments', 'counsellors', 'profiles'):
        op.execute(f'DROP TABLE IF EXISTS {table} CASCADE')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
