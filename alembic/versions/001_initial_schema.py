"""Initial journal schema: users, memories, memory_shares, memory_prompts.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

memory_type = postgresql.ENUM('text', 'audio', 'mixed', name='memory_type', create_type=False)
memory_emotion = postgresql.ENUM(
    'happy', 'sad', 'grateful', 'peaceful', 'excited',
    'nostalgic', 'anxious', 'content', 'mixed',
    name='memory_emotion',
    create_type=False,
)
memory_visibility = postgresql.ENUM(
    'private', 'shared', 'public', name='memory_visibility', create_type=False
)
share_permission = postgresql.ENUM('view', 'edit', name='share_permission', create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for enum in (memory_type, memory_emotion, memory_visibility, share_permission):
        enum.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.String(2048), nullable=True),
        sa.Column('provider', sa.String(32), nullable=False, server_default='google'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'memories',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('type', memory_type, nullable=False, server_default='text'),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('transcript', sa.Text, nullable=True),
        sa.Column('audio_url', sa.String(2048), nullable=True),
        sa.Column('audio_duration', sa.Integer, nullable=True, comment='Seconds'),
        sa.Column('image_url', sa.String(2048), nullable=True),
        sa.Column('video_url', sa.String(2048), nullable=True),
        sa.Column('attachments', postgresql.JSONB, nullable=False, server_default='[]'),
        sa.Column('people', postgresql.ARRAY(sa.String(255)), nullable=False, server_default='{}'),
        sa.Column('location', sa.String(512), nullable=True),
        sa.Column('emotion', memory_emotion, nullable=True),
        sa.Column(
            'date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
            comment='When the remembered event happened',
        ),
        sa.Column('prompt', sa.Text, nullable=True),
        sa.Column('visibility', memory_visibility, nullable=False, server_default='private'),
        sa.Column('is_public', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('share_token', sa.String(128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('share_token', name='uq_memories_share_token'),
    )
    op.create_index('ix_memories_user_id', 'memories', ['user_id'])
    op.create_index('ix_memories_user_date', 'memories', ['user_id', 'date'])

    op.create_table(
        'memory_shares',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('memory_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('shared_with_email', sa.String(320), nullable=False),
        sa.Column('shared_with_user_id', sa.String(128), nullable=True),
        sa.Column('shared_by_user_id', sa.String(128), nullable=False),
        sa.Column('permission', share_permission, nullable=False, server_default='view'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.ForeignKeyConstraint(['memory_id'], ['memories.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shared_with_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shared_by_user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_memory_shares_memory_id', 'memory_shares', ['memory_id'])
    op.create_index('ix_memory_shares_email', 'memory_shares', ['shared_with_email'])

    op.create_table(
        'memory_prompts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('category', sa.String(64), nullable=False),
        sa.Column('prompt', sa.Text, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_memory_prompts_category', 'memory_prompts', ['category'])


def downgrade() -> None:
    op.drop_index('ix_memory_prompts_category', table_name='memory_prompts')
    op.drop_table('memory_prompts')

    op.drop_index('ix_memory_shares_email', table_name='memory_shares')
    op.drop_index('ix_memory_shares_memory_id', table_name='memory_shares')
    op.drop_table('memory_shares')

    op.drop_index('ix_memories_user_date', table_name='memories')
    op.drop_index('ix_memories_user_id', table_name='memories')
    op.drop_table('memories')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    for enum in (share_permission, memory_visibility, memory_emotion, memory_type):
        enum.drop(bind, checkfirst=True)
