"""create scheduling tables

Revision ID: 3c1a7e52b9d0
Revises:
Create Date: 2026-10-19 09:12:40.118203

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3c1a7e52b9d0'
down_revision = None
branch_labels = None
depends_on = None

DEPARTMENTS = ('TEAMSPORT', 'TEXTILVEREDELUNG', 'STICKEREI', 'DRUCK', 'SONSTIGES')
WORKFLOW_STATES = ('ENTWURF', 'NEU', 'PRUEFUNG', 'FUER_PROD', 'IN_PROD', 'WARTET_FEHLTEILE',
                   'FERTIG', 'ZUR_ABRECHNUNG', 'ABGERECHNET')
QC_STATES = ('IO', 'NIO', 'UNGEPRUEFT')
SLOT_STATES = ('PLANNED', 'RUNNING', 'PAUSED', 'DONE', 'BLOCKED')


def upgrade():
    # 工位
    op.create_table('work_centers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('department', sa.Enum(*DEPARTMENTS, name='department', native_enum=False), nullable=False),
        sa.Column('capacity_min', sa.Integer(), nullable=False, server_default='660'),
        sa.Column('concurrent_capacity', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.CheckConstraint('concurrent_capacity >= 1', name='ck_work_centers_concurrent_capacity'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_work_centers_id'), 'work_centers', ['id'], unique=False)

    # 订单
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('display_order_number', sa.String(length=32), nullable=True),
        sa.Column('ext_id', sa.String(length=64), nullable=True),
        sa.Column('source', sa.Enum('JTL', 'INTERNAL', name='ordersource', native_enum=False), nullable=False),
        sa.Column('department', sa.Enum(*DEPARTMENTS, name='department', native_enum=False), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('customer', sa.String(length=255), nullable=False),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('workflow', sa.Enum(*WORKFLOW_STATES, name='workflowstate', native_enum=False), nullable=False),
        sa.Column('qc', sa.Enum(*QC_STATES, name='qcstate', native_enum=False), nullable=False),
        sa.Column('total_net', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('total_vat', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('total_gross', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_qty', sa.Integer(), nullable=True),
        sa.Column('delivery_note', sa.Text(), nullable=True),
        sa.Column('settled_at', sa.DateTime(), nullable=True),
        sa.Column('settled_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('display_order_number'),
        sa.UniqueConstraint('ext_id')
    )
    op.create_index(op.f('ix_orders_id'), 'orders', ['id'], unique=False)

    op.create_table('order_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('current', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('year')
    )
    op.create_index(op.f('ix_order_sequences_id'), 'order_sequences', ['id'], unique=False)

    op.create_table('size_tables',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('scheme', sa.String(length=64), nullable=False),
        sa.Column('rows', sa.JSON(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id')
    )
    op.create_index(op.f('ix_size_tables_id'), 'size_tables', ['id'], unique=False)

    op.create_table('print_assets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_print_assets_id'), 'print_assets', ['id'], unique=False)

    # 时间槽
    op.create_table('time_slots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_min', sa.Integer(), nullable=False),
        sa.Column('length_min', sa.Integer(), nullable=False),
        sa.Column('work_center_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('blocked', sa.Boolean(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum(*SLOT_STATES, name='timeslotstatus', native_enum=False), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('stopped_at', sa.DateTime(), nullable=True),
        sa.Column('elapsed_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('actual_duration_min', sa.Integer(), nullable=True),
        sa.Column('qc', sa.Enum(*QC_STATES, name='qcstate', native_enum=False), nullable=True),
        sa.Column('qc_note', sa.Text(), nullable=True),
        sa.Column('missing_parts_note', sa.Text(), nullable=True),
        sa.Column('missing_parts_reported_at', sa.DateTime(), nullable=True),
        sa.Column('missing_parts_reported_by', sa.String(length=64), nullable=True),
        sa.Column('missing_parts_resolved_at', sa.DateTime(), nullable=True),
        sa.Column('missing_parts_resolved_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['work_center_id'], ['work_centers.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_time_slots_id'), 'time_slots', ['id'], unique=False)
    op.create_index(op.f('ix_time_slots_date'), 'time_slots', ['date'], unique=False)
    op.create_index(op.f('ix_time_slots_work_center_id'), 'time_slots', ['work_center_id'], unique=False)
    op.create_index(op.f('ix_time_slots_order_id'), 'time_slots', ['order_id'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_time_slots_order_id'), table_name='time_slots')
    op.drop_index(op.f('ix_time_slots_work_center_id'), table_name='time_slots')
    op.drop_index(op.f('ix_time_slots_date'), table_name='time_slots')
    op.drop_index(op.f('ix_time_slots_id'), table_name='time_slots')
    op.drop_table('time_slots')
    op.drop_index(op.f('ix_print_assets_id'), table_name='print_assets')
    op.drop_table('print_assets')
    op.drop_index(op.f('ix_size_tables_id'), table_name='size_tables')
    op.drop_table('size_tables')
    op.drop_index(op.f('ix_order_sequences_id'), table_name='order_sequences')
    op.drop_table('order_sequences')
    op.drop_index(op.f('ix_orders_id'), table_name='orders')
    op.drop_table('orders')
    op.drop_index(op.f('ix_work_centers_id'), table_name='work_centers')
    op.drop_table('work_centers')
