"""Create surgeries, records, record steps/OSATs and audit log tables.

Revision ID: 0001_create_record_tables
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_create_record_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


record_status = sa.Enum('PENDING', 'CORRECTED', 'REVIEWED', 'CANCELED', name='recordstatus')
summary_scale = sa.Enum('A', 'B', 'C', 'D', 'E', name='summaryscale')
step_score = sa.Enum('A', 'B', 'C', 'NOT_APPLICABLE', name='stepscore')
audit_action = sa.Enum(
    'RECORD_CREATED', 'RECORD_SELF_ASSESSED', 'RECORD_REVIEWED',
    'RECORD_CANCELED', 'RECORD_DELETED',
    name='auditaction',
)


def upgrade() -> None:
    """Create record lifecycle tables."""
    op.create_table(
        'surgeries',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('area', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('steps', postgresql.JSONB(), nullable=False),
        sa.Column('osats', postgresql.JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_surgeries_name', 'surgeries', ['name'])

    op.create_table(
        'records',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('resident_id', sa.BigInteger(), nullable=False),
        sa.Column('teacher_id', sa.BigInteger(), nullable=False),
        sa.Column('surgery_id', sa.BigInteger(), nullable=False),
        sa.Column('patient_id', sa.String(50), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', record_status, nullable=False, server_default='PENDING'),
        sa.Column('residents_year', sa.Integer(), nullable=False),
        sa.Column('resident_judgment', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('teacher_judgment', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('summary_scale', summary_scale, nullable=False, server_default='A'),
        sa.Column('resident_comment', sa.Text(), nullable=False, server_default=''),
        sa.Column('feedback', sa.Text(), nullable=False, server_default=''),
        sa.Column('percent_completed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revision', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['surgery_id'], ['surgeries.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_records_resident_id', 'records', ['resident_id'])
    op.create_index('ix_records_teacher_id', 'records', ['teacher_id'])
    op.create_index('ix_records_surgery_id', 'records', ['surgery_id'])
    op.create_index('ix_records_date', 'records', ['date'])
    op.create_index('ix_records_status', 'records', ['status'])
    op.create_index('ix_records_deleted', 'records', ['deleted'])

    op.create_table(
        'record_steps',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('record_id', sa.BigInteger(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('resident_done', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('teacher_done', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('score', step_score, nullable=False, server_default='A'),
        sa.ForeignKeyConstraint(['record_id'], ['records.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_record_steps_record_id', 'record_steps', ['record_id'])

    op.create_table(
        'record_osats',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('record_id', sa.BigInteger(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('item', sa.String(255), nullable=False),
        sa.Column('scale', postgresql.JSONB(), nullable=False),
        sa.Column('obtained', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['record_id'], ['records.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_record_osats_record_id', 'record_osats', ['record_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('actor_id', sa.BigInteger(), nullable=True),
        sa.Column('actor_role', sa.String(20), nullable=True),
        sa.Column('action', audit_action, nullable=False),
        sa.Column('resource_type', sa.String(100), nullable=False),
        sa.Column('resource_id', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('extra_data', postgresql.JSONB(), nullable=True),
        sa.Column('ip_address', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    """Drop record lifecycle tables."""
    op.drop_table('audit_logs')
    op.drop_table('record_osats')
    op.drop_table('record_steps')
    op.drop_table('records')
    op.drop_table('surgeries')

    bind = op.get_bind()
    for enum_type in (audit_action, step_score, summary_scale, record_status):
        enum_type.drop(bind, checkfirst=True)
