"""initial facturflow schema

Revision ID: ff0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete FacturFlow schema:
- users: accounts, company profile (issuer block) and numbering counters
- session_tokens: hashed bearer tokens
- clients: customers of a user (company or individual)
- documents: invoices, quotes, deposits and receipts in one table
- document_line_items: priced lines with computed amounts
- einvoice_sync_state: cursor of the e-invoicing event feed
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'ff0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users: login identity + company profile + per-type counters
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('company_siren', sa.String(length=9), nullable=True),
        sa.Column('company_siret', sa.String(length=14), nullable=True),
        sa.Column('company_vat_number', sa.String(length=32), nullable=True),
        sa.Column('company_address', sa.String(length=255), nullable=True),
        sa.Column('company_postal_code', sa.String(length=10), nullable=True),
        sa.Column('company_city', sa.String(length=128), nullable=True),
        sa.Column('company_country', sa.String(length=2), nullable=False, server_default='FR'),
        sa.Column('company_email', sa.String(length=255), nullable=True),
        sa.Column('company_phone', sa.String(length=32), nullable=True),
        sa.Column('iban', sa.String(length=34), nullable=True),
        sa.Column('bic', sa.String(length=11), nullable=True),
        sa.Column('invoice_prefix', sa.String(length=10), nullable=False, server_default='FAC'),
        sa.Column('quote_prefix', sa.String(length=10), nullable=False, server_default='DEV'),
        sa.Column('next_invoice_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('next_quote_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('next_deposit_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('next_receipt_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'])

    # ============================================================================
    # session_tokens: only SHA-256 hashes are stored
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # clients
    # ============================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('client_type', sa.String(length=16), nullable=False, server_default='COMPANY'),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('siren', sa.String(length=9), nullable=True),
        sa.Column('siret', sa.String(length=14), nullable=True),
        sa.Column('vat_number', sa.String(length=32), nullable=True),
        sa.Column('first_name', sa.String(length=128), nullable=True),
        sa.Column('last_name', sa.String(length=128), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('postal_code', sa.String(length=10), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('country', sa.String(length=2), nullable=False, server_default='FR'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'email', name='uq_clients_user_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_clients_user_id', 'clients', ['user_id'])

    # ============================================================================
    # documents: INVOICE | QUOTE | DEPOSIT | RECEIPT
    # ============================================================================
    op.create_table(
        'documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('doc_type', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='DRAFT'),
        sa.Column('number', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('valid_until', sa.Date(), nullable=True),
        sa.Column('vat_rate_bps', sa.Integer(), nullable=False, server_default='2000'),
        sa.Column('discount_type', sa.String(length=16), nullable=True),
        sa.Column('discount_percent', sa.Numeric(5, 2), nullable=True),
        sa.Column('discount_amount_cents', sa.Integer(), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('net_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deposit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('net_to_pay_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('business_metadata', sa.JSON(), nullable=True),
        sa.Column('related_document_id', sa.Integer(), nullable=True),
        sa.Column('accept_token', sa.String(length=64), nullable=True),
        sa.Column('refuse_token', sa.String(length=64), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('einvoice_ref', sa.String(length=64), nullable=True),
        sa.Column('einvoice_status', sa.String(length=32), nullable=True),
        sa.Column('einvoice_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['related_document_id'], ['documents.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'doc_type', 'number', name='uq_documents_user_type_number'),
        sa.UniqueConstraint('accept_token'),
        sa.UniqueConstraint('refuse_token'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_documents_user_id', 'documents', ['user_id'])
    op.create_index('ix_documents_user_type_created', 'documents', ['user_id', 'doc_type', 'created_at'])
    op.create_index('ix_documents_client', 'documents', ['client_id'])
    op.create_index('ix_documents_status_due', 'documents', ['doc_type', 'status', 'due_date'])
    op.create_index('ix_documents_related_document_id', 'documents', ['related_document_id'])
    op.create_index('ix_documents_einvoice_ref', 'documents', ['einvoice_ref'])

    # ============================================================================
    # document_line_items
    # ============================================================================
    op.create_table(
        'document_line_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False, server_default='unité'),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('vat_rate_bps', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=16), nullable=True),
        sa.ForeignKeyConstraint(['document_id'], ['documents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_line_items_document', 'document_line_items', ['document_id', 'position'])

    # ============================================================================
    # einvoice_sync_state: singleton cursor row (id=1)
    # ============================================================================
    op.create_table(
        'einvoice_sync_state',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('last_event_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('einvoice_sync_state')
    op.drop_table('document_line_items')
    op.drop_table('documents')
    op.drop_table('clients')
    op.drop_table('session_tokens')
    op.drop_table('users')
