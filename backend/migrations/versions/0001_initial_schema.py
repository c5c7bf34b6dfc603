"""initial order workflow schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('phone', sa.String(length=32), nullable=False, server_default=''),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('hourly_rate', sa.Float(), nullable=True),
        sa.Column('story_rate', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('printers',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False, unique=True),
        sa.Column('story_rate', sa.Float(), nullable=True),
    )

    op.create_table('shipping_companies',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
    )
    op.create_index('ix_shipping_companies_type', 'shipping_companies', ['type'])

    op.create_table('orders',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('customer', sa.JSON(), nullable=False),
        sa.Column('story', sa.JSON(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('reference_images', sa.JSON(), nullable=True),
        sa.Column('final_pdf', sa.JSON(), nullable=True),
        sa.Column('cover_image', sa.JSON(), nullable=True),
        sa.Column('assigned_to_designer', sa.String(length=36), nullable=True),
        sa.Column('assigned_to_printer', sa.String(length=36), nullable=True),
        sa.Column('international_shipping_info', sa.JSON(), nullable=True),
        sa.Column('domestic_shipping_info', sa.JSON(), nullable=True),
        sa.Column('delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activity_log', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('ix_orders_created_by', 'orders', ['created_by'])
    op.create_index('ix_orders_assigned_to_designer', 'orders', ['assigned_to_designer'])
    op.create_index('ix_orders_assigned_to_printer', 'orders', ['assigned_to_printer'])

    op.create_table('hours_logs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('hours', sa.Float(), nullable=False),
        sa.Column('rate', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_hours_logs_user_id', 'hours_logs', ['user_id'])
    op.create_index('ix_hours_logs_date', 'hours_logs', ['date'])

    op.create_table('bonuses',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
    )
    op.create_index('ix_bonuses_user_id', 'bonuses', ['user_id'])
    op.create_index('ix_bonuses_date', 'bonuses', ['date'])

    op.create_table('payments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('printer_id', sa.String(length=36), sa.ForeignKey('printers.id'), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.CheckConstraint('(user_id IS NULL) != (printer_id IS NULL)', name='ck_payment_single_payee'),
    )
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])
    op.create_index('ix_payments_printer_id', 'payments', ['printer_id'])
    op.create_index('ix_payments_date', 'payments', ['date'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.String(length=36), nullable=False),
        sa.Column('actor_role', sa.String(length=16), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    for table in ('audit_logs', 'payments', 'bonuses', 'hours_logs', 'orders', 'shipping_companies', 'printers', 'users'):
        op.drop_table(table)
