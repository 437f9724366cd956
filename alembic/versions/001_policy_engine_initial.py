"""Policy engine initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Policies 表
    op.create_table(
        'policies',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('config', postgresql.JSONB, nullable=False),
        sa.Column('version', sa.String(50), nullable=False),
        sa.Column('tags', postgresql.JSONB, nullable=False, server_default='[]'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_policies_name', 'policies', ['name'])
    op.create_index('ix_policies_is_active', 'policies', ['is_active'])
    # 活跃策略名称唯一
    op.create_index(
        'uq_policies_active_name',
        'policies',
        ['name'],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )

    # Policy Versions 表（只追加）
    op.create_table(
        'policy_versions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'policy_id',
            sa.String(36),
            sa.ForeignKey('policies.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('version', sa.String(50), nullable=False),
        sa.Column('config', postgresql.JSONB, nullable=False),
        sa.Column('changelog', sa.Text),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('policy_id', 'version', name='uq_policy_versions_policy_version'),
    )
    op.create_index('ix_policy_versions_policy_id', 'policy_versions', ['policy_id'])
    op.create_index('ix_policy_versions_is_active', 'policy_versions', ['is_active'])
    op.create_index('ix_policy_versions_created_at', 'policy_versions', ['created_at'])
    # 每个策略最多一个 active 版本
    op.create_index(
        'uq_policy_versions_active',
        'policy_versions',
        ['policy_id'],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )

    # Policy Templates 表
    op.create_table(
        'policy_templates',
        sa.Column('id', sa.String(100), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('config', postgresql.JSONB, nullable=False),
        sa.Column('tags', postgresql.JSONB, nullable=False, server_default='[]'),
        sa.Column('downloads', sa.Integer, nullable=False, server_default='0'),
        sa.Column('rating', sa.Float),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_policy_templates_category', 'policy_templates', ['category'])

    # Audit Logs 表
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('actor_id', sa.String(255), nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('resource_type', sa.String(100), nullable=False),
        sa.Column('resource_id', sa.String(255), nullable=False),
        sa.Column('details', postgresql.JSONB),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_resource_type', 'audit_logs', ['resource_type'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('policy_templates')
    op.drop_index('uq_policy_versions_active', table_name='policy_versions')
    op.drop_table('policy_versions')
    op.drop_index('uq_policies_active_name', table_name='policies')
    op.drop_table('policies')
