"""Initial workshop schema: users, vehicles, calendar, parts, appointments

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. users and session_tokens (authentication)
2. vehicles (client vehicles)
3. calendar_slots (lazily materialized working-hour slots)
4. suppliers and parts (inventory)
5. appointments, appointment_parts, appointment_history (approval workflow)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. USERS / SESSION TOKENS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('client', 'admin', 'accountant', 'manager')", name='ck_users_role'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=False)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)

    # ==========================================================================
    # 2. VEHICLES
    # ==========================================================================
    op.create_table('vehicles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('vehicle_type', sa.String(length=32), nullable=False),
        sa.Column('brand', sa.String(length=100), nullable=False),
        sa.Column('model', sa.String(length=100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('is_electric', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('vehicles', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_vehicles_user_id'), ['user_id'], unique=False)

    # ==========================================================================
    # 3. CALENDAR SLOTS
    # ==========================================================================
    op.create_table('calendar_slots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('slot_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('max_appointments', sa.Integer(), nullable=False),
        sa.Column('current_appointments', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('current_appointments >= 0', name='ck_calendar_slots_current_nonneg'),
        sa.CheckConstraint('current_appointments <= max_appointments', name='ck_calendar_slots_capacity'),
        sa.CheckConstraint('start_time < end_time', name='ck_calendar_slots_window_order'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slot_date', 'start_time', 'end_time', name='uq_calendar_slots_window'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('calendar_slots', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_calendar_slots_slot_date'), ['slot_date'], unique=False)
        batch_op.create_index('ix_calendar_slots_date_start', ['slot_date', 'start_time'], unique=False)

    # ==========================================================================
    # 4. SUPPLIERS / PARTS
    # ==========================================================================
    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_name'),
        sqlite_autoincrement=True
    )

    op.create_table('parts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('part_number', sa.String(length=64), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False),
        sa.Column('minimum_stock_level', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_parts_stock_nonneg'),
        sa.CheckConstraint('price_cents >= 0', name='ck_parts_price_nonneg'),
        sa.CheckConstraint('minimum_stock_level >= 0', name='ck_parts_min_stock_nonneg'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('part_number', name='uq_parts_part_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('parts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_parts_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index('ix_parts_category_name', ['category', 'name'], unique=False)

    # ==========================================================================
    # 5. APPOINTMENTS / ALLOCATION / HISTORY
    # ==========================================================================
    op.create_table('appointments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('vehicle_id', sa.Integer(), nullable=True),
        sa.Column('appointment_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('problem_description', sa.Text(), nullable=False),
        sa.Column('admin_response', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('retry_days', sa.Integer(), nullable=True),
        sa.Column('estimated_price_cents', sa.Integer(), nullable=True),
        sa.Column('warranty_info', sa.String(length=255), nullable=True),
        sa.Column('estimated_completion_time', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'completed', 'cancelled')",
            name='ck_appointments_status'
        ),
        sa.CheckConstraint(
            'estimated_price_cents IS NULL OR estimated_price_cents > 0',
            name='ck_appointments_price_positive'
        ),
        sa.CheckConstraint('retry_days IS NULL OR retry_days > 0', name='ck_appointments_retry_days'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('appointments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_appointments_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointments_appointment_at'), ['appointment_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointments_status'), ['status'], unique=False)
        batch_op.create_index(
            'uq_appointments_user_at_active',
            ['user_id', 'appointment_at'],
            unique=True,
            sqlite_where=sa.text("status IN ('pending', 'approved', 'completed')"),
            postgresql_where=sa.text("status IN ('pending', 'approved', 'completed')"),
        )
        batch_op.create_index('ix_appointments_status_created', ['status', 'created_at'], unique=False)

    op.create_table('appointment_parts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=False),
        sa.Column('part_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_appointment_parts_quantity'),
        sa.CheckConstraint('unit_price_cents >= 0', name='ck_appointment_parts_unit_price'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ),
        sa.ForeignKeyConstraint(['part_id'], ['parts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('appointment_id', 'part_id', name='uq_appointment_parts_part'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('appointment_parts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_appointment_parts_appointment_id'), ['appointment_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_appointment_parts_part_id'), ['part_id'], unique=False)

    op.create_table('appointment_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('old_status', sa.String(length=16), nullable=True),
        sa.Column('new_status', sa.String(length=16), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint(
            "action IN ('created', 'approved', 'rejected', 'cancelled', 'updated')",
            name='ck_appointment_history_action'
        ),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('appointment_history', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_appointment_history_user_id'), ['user_id'], unique=False)
        batch_op.create_index(
            'ix_appointment_history_appointment_created',
            ['appointment_id', 'created_at'],
            unique=False
        )


def downgrade():
    with op.batch_alter_table('appointment_history', schema=None) as batch_op:
        batch_op.drop_index('ix_appointment_history_appointment_created')
        batch_op.drop_index(batch_op.f('ix_appointment_history_user_id'))
    op.drop_table('appointment_history')

    with op.batch_alter_table('appointment_parts', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_appointment_parts_part_id'))
        batch_op.drop_index(batch_op.f('ix_appointment_parts_appointment_id'))
    op.drop_table('appointment_parts')

    with op.batch_alter_table('appointments', schema=None) as batch_op:
        batch_op.drop_index('ix_appointments_status_created')
        batch_op.drop_index('uq_appointments_user_at_active')
        batch_op.drop_index(batch_op.f('ix_appointments_status'))
        batch_op.drop_index(batch_op.f('ix_appointments_appointment_at'))
        batch_op.drop_index(batch_op.f('ix_appointments_user_id'))
    op.drop_table('appointments')

    with op.batch_alter_table('parts', schema=None) as batch_op:
        batch_op.drop_index('ix_parts_category_name')
        batch_op.drop_index(batch_op.f('ix_parts_supplier_id'))
    op.drop_table('parts')
    op.drop_table('suppliers')

    with op.batch_alter_table('calendar_slots', schema=None) as batch_op:
        batch_op.drop_index('ix_calendar_slots_date_start')
        batch_op.drop_index(batch_op.f('ix_calendar_slots_slot_date'))
    op.drop_table('calendar_slots')

    with op.batch_alter_table('vehicles', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_vehicles_user_id'))
    op.drop_table('vehicles')

    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_session_tokens_token_hash'))
        batch_op.drop_index(batch_op.f('ix_session_tokens_user_id'))
    op.drop_table('session_tokens')

    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_users_email'))
    op.drop_table('users')
