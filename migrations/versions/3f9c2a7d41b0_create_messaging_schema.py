"""create messaging schema

Revision ID: 3f9c2a7d41b0
Revises:
Create Date: 2026-10-17 09:12:44.104512

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d41b0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Step 1: Create the function (required before triggers)
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
        CREATE TABLE IF NOT EXISTS user_profiles (
            id UUID PRIMARY KEY,
            name VARCHAR(255),
            email VARCHAR(255),
            role VARCHAR(20)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS conversations (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            requester_id UUID NOT NULL,
            provider_id UUID NOT NULL,
            title VARCHAR(255) NOT NULL,
            job_ref UUID,
            job_scope VARCHAR(64) NOT NULL DEFAULT '',
            status VARCHAR(20) NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'archived', 'closed', 'deleted')),
            next_seq INTEGER NOT NULL DEFAULT 1 CHECK (next_seq >= 1),
            last_activity_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT ck_conversations_distinct_parties CHECK (requester_id <> provider_id),
            CONSTRAINT uq_conversations_parties UNIQUE (requester_id, provider_id, job_scope)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS conversation_participants (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            conversation_id UUID NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            user_id UUID NOT NULL,
            role VARCHAR(20) NOT NULL CHECK (role IN ('requester', 'provider')),
            last_read_message_id UUID,
            last_read_seq INTEGER,
            last_read_at TIMESTAMP WITH TIME ZONE,
            is_typing BOOLEAN NOT NULL DEFAULT FALSE,
            typing_updated_at TIMESTAMP WITH TIME ZONE,
            visibility VARCHAR(20) NOT NULL DEFAULT 'active' CHECK (visibility IN ('active', 'archived', 'deleted')),
            visibility_changed_at TIMESTAMP WITH TIME ZONE,
            joined_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_participants_conversation_user UNIQUE (conversation_id, user_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            conversation_id UUID NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            sender_id UUID NOT NULL,
            kind VARCHAR(10) NOT NULL CHECK (kind IN ('text', 'offer', 'system', 'file')),
            content TEXT,
            reply_to_id UUID REFERENCES messages(id) ON DELETE SET NULL,
            seq INTEGER NOT NULL CHECK (seq >= 1),
            deleted BOOLEAN NOT NULL DEFAULT FALSE,
            deleted_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_messages_conversation_seq UNIQUE (conversation_id, seq)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS message_attachments (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            message_id UUID NOT NULL REFERENCES messages(id) ON DELETE CASCADE,
            position INTEGER NOT NULL DEFAULT 0,
            file_name VARCHAR(255) NOT NULL,
            url TEXT NOT NULL,
            mime_type VARCHAR(255) NOT NULL,
            size_bytes BIGINT CHECK (size_bytes IS NULL OR size_bytes >= 0),
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS message_offers (
            id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            message_id UUID NOT NULL UNIQUE REFERENCES messages(id) ON DELETE CASCADE,
            title VARCHAR(255) NOT NULL,
            price NUMERIC(12, 2) NOT NULL CHECK (price > 0),
            delivery_days INTEGER NOT NULL CHECK (delivery_days > 0),
            notes TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'accepted', 'declined', 'countered', 'expired')),
            counter_price NUMERIC(12, 2) CHECK (counter_price IS NULL OR counter_price > 0),
            counter_days INTEGER CHECK (counter_days IS NULL OR counter_days > 0),
            counter_notes TEXT,
            expires_at TIMESTAMP WITH TIME ZONE,
            responded_by UUID,
            responded_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
    """)

    # Step 3: Create indexes
    op.execute('CREATE INDEX IF NOT EXISTS idx_conversations_requester ON conversations(requester_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_conversations_provider ON conversations(provider_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_conversations_last_activity ON conversations(last_activity_at DESC)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_participants_user ON conversation_participants(user_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_messages_conversation_id ON messages(conversation_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_messages_purge ON messages(deleted_at) WHERE deleted')
    op.execute('CREATE INDEX IF NOT EXISTS idx_attachments_message ON message_attachments(message_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_offers_status ON message_offers(status)')
    op.execute("CREATE INDEX IF NOT EXISTS idx_offers_open_expiry ON message_offers(expires_at) WHERE status IN ('pending', 'countered')")

    # Step 4: Create triggers (only after tables exist)
    for table in ('conversations', 'messages', 'message_offers'):
        op.execute(f'''
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
        ''')


def downgrade() -> None:
    """Downgrade schema."""
    for table in ('conversations', 'messages', 'message_offers'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}')
    op.execute('DROP TABLE IF EXISTS message_offers')
    op.execute('DROP TABLE IF EXISTS message_attachments')
    op.execute('DROP TABLE IF EXISTS messages')
    op.execute('DROP TABLE IF EXISTS conversation_participants')
    op.execute('DROP TABLE IF EXISTS conversations')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
