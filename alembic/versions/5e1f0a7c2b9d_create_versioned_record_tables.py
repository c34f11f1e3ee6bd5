"""Create versioned record tables.

Revision ID: 5e1f0a7c2b9d
Revises:
Create Date: 2026-10-19

Creates the insured table and the identity/records table pairs for
employees and insured addresses.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '5e1f0a7c2b9d'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create insured, employee and address tables."""
    op.create_table(
        'insured',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('policy_number', sa.Integer(), nullable=False, unique=True),
        sa.Column('record_timestamp', sa.BigInteger(), nullable=False,
                  comment='Unix epoch seconds'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_insured_record_timestamp', 'insured', ['record_timestamp'])

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('insured_id', sa.Integer(),
                  sa.ForeignKey('insured.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False,
                  comment='Name at creation time'),
        sa.UniqueConstraint('insured_id', 'name', name='uq_employees_insured_id_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_employees_insured_id', 'employees', ['insured_id'])

    op.create_table(
        'employees_records',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('employee_id', sa.Integer(),
                  sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('start_date', sa.String(10), nullable=False, comment='YYYY-MM-DD'),
        sa.Column('end_date', sa.String(10), nullable=True, comment='YYYY-MM-DD'),
        sa.Column('record_timestamp', sa.BigInteger(), nullable=False,
                  comment='Unix epoch seconds'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_employees_records_employee_id', 'employees_records', ['employee_id'])
    op.create_index('ix_employees_records_record_timestamp', 'employees_records', ['record_timestamp'])

    op.create_table(
        'insured_addresses',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('insured_id', sa.Integer(),
                  sa.ForeignKey('insured.id', ondelete='CASCADE'), nullable=False, unique=True),
        sqlite_autoincrement=True,
    )

    op.create_table(
        'insured_addresses_records',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('address_id', sa.Integer(),
                  sa.ForeignKey('insured_addresses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('record_timestamp', sa.BigInteger(), nullable=False,
                  comment='Unix epoch seconds'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_insured_addresses_records_address_id', 'insured_addresses_records', ['address_id'])
    op.create_index('ix_insured_addresses_records_record_timestamp', 'insured_addresses_records', ['record_timestamp'])


def downgrade() -> None:
    """Drop all versioned record tables."""
    op.drop_table('insured_addresses_records')
    op.drop_table('insured_addresses')
    op.drop_table('employees_records')
    op.drop_table('employees')
    op.drop_table('insured')
