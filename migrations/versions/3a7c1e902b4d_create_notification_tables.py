"""create school, fee and notification tables

Revision ID: 3a7c1e902b4d
Revises:
Create Date: 2026-10-12 09:14:03.118542
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '3a7c1e902b4d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.Column('is_deleted', sa.Boolean(), default=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'schools',
        *_audit_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=30)),
        sa.Column('email', sa.String(length=255)),
        sa.Column('city', sa.String(length=100)),
        sa.Column('is_active', sa.Boolean(), default=True),
    )
    op.create_table(
        'users',
        *_audit_columns(),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=True, index=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True, index=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('whatsapp_e164', sa.String(length=20), nullable=True),
        sa.Column('wa_opt_in', sa.Boolean(), default=False),
        sa.Column('preferred_language', sa.String(length=2)),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), default=True),
    )
    op.create_table(
        'parent_student_relations',
        *_audit_columns(),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('relationship_type', sa.String(length=30)),
        sa.Column('is_primary', sa.Boolean(), default=False),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.UniqueConstraint('parent_id', 'student_id', name='uq_parent_student'),
    )
    op.create_table(
        'fee_structures',
        *_audit_columns(),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=False, index=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('fee_type', sa.String(length=30)),
        sa.Column('frequency', sa.String(length=20)),
        sa.Column('is_active', sa.Boolean(), default=True),
    )
    op.create_table(
        'assigned_fees',
        *_audit_columns(),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=False, index=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('fee_structure_id', sa.Integer(), sa.ForeignKey('fee_structures.id'), nullable=True),
        sa.Column('final_amount', sa.Integer(), nullable=False),
        sa.Column('paid_amount', sa.Integer()),
        sa.Column('balance_amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), index=True),
        sa.Column('due_date', sa.DateTime(timezone=True), index=True),
        sa.Column('last_payment_date', sa.DateTime(timezone=True)),
        sa.Column('paid_date', sa.DateTime(timezone=True)),
        sa.Column('notes', sa.Text()),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent_at', sa.DateTime(timezone=True)),
        sa.Column('overdue_notice_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('overdue_notice_sent_at', sa.DateTime(timezone=True)),
    )
    op.create_table(
        'fee_payments',
        *_audit_columns(),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=False, index=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=30)),
        sa.Column('transaction_ref', sa.String(length=100)),
        sa.Column('receipt_number', sa.String(length=60), unique=True, index=True),
        sa.Column('status', sa.String(length=20)),
        sa.Column('notes', sa.Text()),
        sa.Column('recorded_by', sa.Integer()),
        sa.Column('extra_data', sa.JSON()),
    )
    op.create_table(
        'fee_payment_items',
        *_audit_columns(),
        sa.Column('payment_id', sa.Integer(), sa.ForeignKey('fee_payments.id'), nullable=False, index=True),
        sa.Column('assigned_fee_id', sa.Integer(), sa.ForeignKey('assigned_fees.id'), nullable=False, index=True),
        sa.Column('amount', sa.Integer(), nullable=False),
    )
    op.create_table(
        'student_attendances',
        *_audit_columns(),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=False, index=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('class_name', sa.String(length=100)),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('marked_by', sa.Integer()),
    )
    op.create_table(
        'notification_jobs',
        *_audit_columns(),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=False, index=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True, index=True),
        sa.Column('assigned_fee_id', sa.Integer(), sa.ForeignKey('assigned_fees.id'), nullable=True, index=True),
        sa.Column('notification_type', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('channels', sa.JSON()),
        sa.Column('status', sa.String(length=20), nullable=False, index=True),
        sa.Column('scheduled_for', sa.DateTime(timezone=True)),
        sa.Column('claimed_at', sa.DateTime(timezone=True)),
        sa.Column('sent_at', sa.DateTime(timezone=True)),
        sa.Column('email_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('whatsapp_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('pwa_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_retries', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('error_message', sa.Text()),
    )
    op.create_table(
        'in_app_notifications',
        *_audit_columns(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=30)),
        sa.Column('priority', sa.String(length=20)),
        sa.Column('is_read', sa.Boolean(), default=False),
        sa.Column('metadata', sa.JSON()),
    )
    print("✓ [3a7c1e902b4d] Created school, fee and notification tables")


def downgrade() -> None:
    for table in (
        'in_app_notifications',
        'notification_jobs',
        'student_attendances',
        'fee_payment_items',
        'fee_payments',
        'assigned_fees',
        'fee_structures',
        'parent_student_relations',
        'users',
        'schools',
    ):
        op.drop_table(table)
