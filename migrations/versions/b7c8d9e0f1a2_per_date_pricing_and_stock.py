"""per-date package pricing and item stock

Revision ID: b7c8d9e0f1a2
Revises: a1b2c3d4e5f6
Create Date: 2026-10-16 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c8d9e0f1a2'
down_revision = 'a1b2c3d4e5f6'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'package_pricing',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('package_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('package_id', 'date', name='uq_package_pricing_package_date'),
    )
    with op.batch_alter_table('package_pricing', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_package_pricing_date'), ['date'], unique=False)

    for table, owner, parent in (
        ('package_availability', 'package_id', 'packages'),
        ('extra_availability', 'extra_id', 'extras'),
    ):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column(owner, sa.Integer(), nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('total_quantity', sa.Integer(), nullable=False),
            sa.Column('available_quantity', sa.Integer(), nullable=False),
            sa.Column('is_available', sa.Boolean(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint([owner], [f'{parent}.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint(owner, 'date', name=f'uq_{table}_{owner[:-3]}_date'),
        )
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(batch_op.f(f'ix_{table}_date'), ['date'], unique=False)


def downgrade():
    for table in ('extra_availability', 'package_availability', 'package_pricing'):
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.drop_index(batch_op.f(f'ix_{table}_date'))
        op.drop_table(table)
