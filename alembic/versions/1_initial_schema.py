"""Alembic migration: Create bills, stock_predictions and fetch_logs tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the bill store tables."""
    from sqlalchemy import inspect

    conn = op.get_bind()
    inspector = inspect(conn)
    existing_tables = inspector.get_table_names()

    if 'bills' not in existing_tables:
        op.create_table(
            'bills',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('external_id', sa.Integer(), nullable=False),
            sa.Column('jurisdiction', sa.String(8), nullable=True),
            sa.Column('title', sa.Text(), nullable=False),
            sa.Column('description', sa.Text(), nullable=False),
            sa.Column('sponsor_name', sa.String(200), nullable=False),
            sa.Column('sponsor_party', sa.String(50), nullable=False, server_default='None'),
            sa.Column('sponsor_state', sa.String(8), nullable=False),
            sa.Column('introduced_date', sa.Date(), nullable=False),
            sa.Column('last_action', sa.Text(), nullable=False),
            sa.Column('last_action_date', sa.Date(), nullable=True),
            sa.Column('status', sa.String(50), nullable=False),
            sa.Column('chamber', sa.String(10), nullable=False),
            sa.Column('document_url', sa.Text(), nullable=True),
            sa.Column('passing_likelihood', sa.Float(), nullable=True),
            sa.Column('estimated_decision_date', sa.Date(), nullable=True),
            sa.Column('affected_stock_ids', sa.JSON(none_as_null=True), nullable=True),
            sa.Column('analysis_attempts', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('raw_source_data', sa.JSON(none_as_null=True), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('external_id', name='uq_bill_external_id'),
            sa.CheckConstraint("chamber IN ('house', 'senate')", name='ck_bill_chamber'),
            sa.CheckConstraint(
                'passing_likelihood IS NULL OR (passing_likelihood >= 0 AND passing_likelihood <= 1)',
                name='ck_bill_passing_likelihood_range'
            ),
        )

        op.create_index('ix_bills_jurisdiction', 'bills', ['jurisdiction'])
        op.create_index('ix_bills_introduced_date', 'bills', ['introduced_date'])
        op.create_index('idx_bill_unanalyzed', 'bills', ['id', 'analysis_attempts'])

    if 'stock_predictions' not in existing_tables:
        op.create_table(
            'stock_predictions',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('bill_id', sa.Integer(), nullable=False),
            sa.Column('symbol', sa.String(16), nullable=False),
            sa.Column('company_name', sa.String(200), nullable=False),
            sa.Column('predicted_direction', sa.String(4), nullable=False),
            sa.Column('confidence', sa.Float(), nullable=False),
            sa.Column('reasoning', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ondelete='CASCADE'),
            sa.CheckConstraint(
                "predicted_direction IN ('up', 'down')",
                name='ck_prediction_direction'
            ),
            sa.CheckConstraint(
                'confidence >= 0 AND confidence <= 1',
                name='ck_prediction_confidence_range'
            ),
        )

        op.create_index('ix_stock_predictions_bill_id', 'stock_predictions', ['bill_id'])
        op.create_index('ix_stock_predictions_symbol', 'stock_predictions', ['symbol'])

    if 'fetch_logs' not in existing_tables:
        op.create_table(
            'fetch_logs',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('source', sa.String(100), nullable=False),
            sa.Column('status', sa.String(50), nullable=False),
            sa.Column('records_attempted', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('records_succeeded', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('records_failed', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('duration_seconds', sa.Float(), nullable=False),
            sa.Column('fetch_params', sa.JSON(), nullable=True),
            sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('error_summary', sa.JSON(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )

        op.create_index('ix_fetch_logs_source', 'fetch_logs', ['source'])
        op.create_index('ix_fetch_logs_status', 'fetch_logs', ['status'])
        op.create_index('ix_fetch_logs_created_at', 'fetch_logs', ['created_at'])
        op.create_index(
            'idx_fetch_log_source_status',
            'fetch_logs',
            ['source', 'status', 'created_at']
        )


def downgrade() -> None:
    """Drop the bill store tables."""
    op.drop_table('stock_predictions', if_exists=True)
    op.drop_table('fetch_logs', if_exists=True)
    op.drop_table('bills', if_exists=True)
