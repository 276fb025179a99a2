"""Initial ledger schema

Revision ID: 001_initial
Revises:
Create Date: 2025-05-21

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _amount(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(19, 4), nullable=False, server_default='0', **kwargs)


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('base_currency', sa.String(3), server_default='USD'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Create account_types table, seeded with the five standard types
    account_types = op.create_table(
        'account_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('normal_balance', sa.String(6), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.CheckConstraint("normal_balance IN ('debit', 'credit')", name='ck_account_types_normal_balance'),
    )
    op.bulk_insert(account_types, [
        {'id': 1, 'name': 'Asset', 'normal_balance': 'debit'},
        {'id': 2, 'name': 'Liability', 'normal_balance': 'credit'},
        {'id': 3, 'name': 'Equity', 'normal_balance': 'credit'},
        {'id': 4, 'name': 'Revenue', 'normal_balance': 'credit'},
        {'id': 5, 'name': 'Expense', 'normal_balance': 'debit'},
    ])

    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(),
                  sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('account_type_id', sa.Integer(), sa.ForeignKey('account_types.id'), nullable=False),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('code', 'organization_id'),
    )

    op.create_table(
        'fiscal_years',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(),
                  sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_closed', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('organization_id', 'name'),
    )

    op.create_table(
        'fiscal_periods',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('fiscal_year_id', sa.Integer(),
                  sa.ForeignKey('fiscal_years.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_closed', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('fiscal_year_id', 'name'),
    )

    op.create_table(
        'journal_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(),
                  sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('entry_no', sa.String(50), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('fiscal_period_id', sa.Integer(), sa.ForeignKey('fiscal_periods.id'), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reference', sa.String(100), nullable=True),
        sa.Column('source', sa.String(50), server_default='manual'),
        sa.Column('status', sa.String(20), server_default='draft'),
        sa.Column('currency_code', sa.String(3), server_default='USD'),
        sa.Column('exchange_rate', sa.Numeric(19, 6), server_default='1'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('organization_id', 'entry_no'),
        sa.CheckConstraint("status IN ('draft', 'posted', 'voided')", name='ck_journal_entries_status'),
        sa.CheckConstraint('exchange_rate > 0', name='ck_journal_entries_exchange_rate'),
    )

    op.create_table(
        'journal_entry_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('journal_entry_id', sa.Integer(),
                  sa.ForeignKey('journal_entries.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _amount('debit_amount'),
        _amount('credit_amount'),
        _amount('base_debit_amount'),
        _amount('base_credit_amount'),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('dimensions', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint('debit_amount >= 0 AND credit_amount >= 0', name='ck_item_amounts_non_negative'),
        sa.CheckConstraint('debit_amount = 0 OR credit_amount = 0', name='ck_item_one_sided'),
    )

    # Append-only ledger; sequence orders the rows of one account
    op.create_table(
        'general_ledger',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(),
                  sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('fiscal_period_id', sa.Integer(), sa.ForeignKey('fiscal_periods.id'), nullable=False),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('journal_entry_id', sa.Integer(), sa.ForeignKey('journal_entries.id'), nullable=False),
        sa.Column('journal_entry_item_id', sa.Integer(),
                  sa.ForeignKey('journal_entry_items.id'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _amount('debit_amount'),
        _amount('credit_amount'),
        sa.Column('balance', sa.Numeric(19, 4), nullable=False),
        sa.Column('currency_code', sa.String(3), nullable=False),
        _amount('base_debit_amount'),
        _amount('base_credit_amount'),
        sa.Column('base_balance', sa.Numeric(19, 4), nullable=False),
        sa.Column('dimensions', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('organization_id', 'account_id', 'sequence',
                            name='uq_general_ledger_account_sequence'),
    )
    op.create_index('general_ledger_organization_account_idx', 'general_ledger',
                    ['organization_id', 'account_id'])
    op.create_index('ix_general_ledger_fiscal_period_id', 'general_ledger', ['fiscal_period_id'])
    op.create_index('ix_general_ledger_journal_entry_id', 'general_ledger', ['journal_entry_id'])
    op.create_index('ix_general_ledger_transaction_date', 'general_ledger', ['transaction_date'])

    # Rows in general_ledger are immutable once written
    op.execute("""
        CREATE FUNCTION general_ledger_forbid_change() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'general_ledger rows are append-only';
        END;
        $$ LANGUAGE plpgsql
    """)
    op.execute("""
        CREATE TRIGGER general_ledger_append_only
        BEFORE UPDATE OR DELETE ON general_ledger
        FOR EACH ROW EXECUTE FUNCTION general_ledger_forbid_change()
    """)

    op.create_table(
        'account_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.Integer(),
                  sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('fiscal_period_id', sa.Integer(), sa.ForeignKey('fiscal_periods.id'), nullable=False),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('currency_code', sa.String(3), nullable=True),
        _amount('opening_balance'),
        _amount('debit_amount'),
        _amount('credit_amount'),
        _amount('closing_balance'),
        _amount('base_opening_balance'),
        _amount('base_debit_amount'),
        _amount('base_credit_amount'),
        _amount('base_closing_balance'),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('last_updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('organization_id', 'fiscal_period_id', 'account_id',
                            name='uq_account_balance_period_account'),
    )


def downgrade() -> None:
    op.drop_table('account_balances')
    op.execute('DROP TRIGGER IF EXISTS general_ledger_append_only ON general_ledger')
    op.execute('DROP FUNCTION IF EXISTS general_ledger_forbid_change()')
    op.drop_index('ix_general_ledger_transaction_date', table_name='general_ledger')
    op.drop_index('ix_general_ledger_journal_entry_id', table_name='general_ledger')
    op.drop_index('ix_general_ledger_fiscal_period_id', table_name='general_ledger')
    op.drop_index('general_ledger_organization_account_idx', table_name='general_ledger')
    op.drop_table('general_ledger')
    op.drop_table('journal_entry_items')
    op.drop_table('journal_entries')
    op.drop_table('fiscal_periods')
    op.drop_table('fiscal_years')
    op.drop_table('accounts')
    op.drop_table('account_types')
    op.drop_table('organizations')
