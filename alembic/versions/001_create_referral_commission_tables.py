"""Create partner referral, payment, payout, notification and audit tables

Revision ID: 001_referral_commission
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB


# revision identifiers, used by Alembic.
revision = '001_referral_commission'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Partners and staff
    op.create_table(
        'partners',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('company_name', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending',
                  comment='pending, active, suspended'),
        sa.Column('bank_code', sa.String(10), nullable=True,
                  comment='Paystack bank code'),
        sa.Column('bank_account_number', sa.String(20), nullable=True),
        sa.Column('bank_account_name', sa.String(200), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'internal_users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('role', sa.String(50), nullable=True, comment='sales, finance, admin'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )

    # Referrals
    op.create_table(
        'referrals',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('referral_code', sa.String(20), nullable=False, unique=True, index=True,
                  comment='PREFIX-XXXXXX, immutable'),
        sa.Column('partner_id', UUID(as_uuid=True),
                  sa.ForeignKey('partners.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('prospect_company_name', sa.String(200), nullable=False),
        sa.Column('contact_name', sa.String(200), nullable=False),
        sa.Column('contact_email', sa.String(255), nullable=False),
        sa.Column('contact_phone', sa.String(20), nullable=False),
        sa.Column('industry', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='code_sent', index=True),
        sa.Column('estimated_deal_value', sa.Numeric(15, 2), nullable=True),
        sa.Column('total_deal_value', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('total_commission_earned', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('total_commission_claimed', sa.Numeric(15, 2), nullable=False, server_default='0',
                  comment='Held by pending, processing or paid payouts'),
        sa.Column('commission_eligible', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('payout_requested', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('payout_requested_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer, nullable=False, server_default='1',
                  comment='Optimistic lock counter'),
        *_timestamps(),
        sa.CheckConstraint('total_commission_claimed >= 0 AND total_commission_claimed <= total_commission_earned',
                           name='ck_referrals_claimed_within_earned'),
    )
    op.create_index('ix_referrals_partner_status', 'referrals', ['partner_id', 'status'])

    # Leads
    op.create_table(
        'leads',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('referral_id', UUID(as_uuid=True),
                  sa.ForeignKey('referrals.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('company_name', sa.String(200), nullable=False),
        sa.Column('contact_name', sa.String(200), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='new', index=True,
                  comment='new, contacted, qualified, converted, lost'),
        sa.Column('deal_value', sa.Numeric(15, 2), nullable=True),
        sa.Column('converted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'lead_activities',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('lead_id', UUID(as_uuid=True),
                  sa.ForeignKey('leads.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('activity_type', sa.String(50), nullable=False),
        sa.Column('subject', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('old_status', sa.String(30), nullable=True),
        sa.Column('new_status', sa.String(30), nullable=True),
        sa.Column('created_by_id', UUID(as_uuid=True),
                  sa.ForeignKey('internal_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )

    # Client payments
    op.create_table(
        'client_payments',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('referral_id', UUID(as_uuid=True),
                  sa.ForeignKey('referrals.id', ondelete='RESTRICT'), nullable=True, index=True),
        sa.Column('lead_id', UUID(as_uuid=True),
                  sa.ForeignKey('leads.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 4), nullable=False,
                  comment='Rate in force when the payment was recorded'),
        sa.Column('commission_calculated', sa.Numeric(15, 2), nullable=False),
        sa.Column('payment_date', sa.Date, nullable=False),
        sa.Column('payment_method', sa.String(30), nullable=False, server_default='bank_transfer'),
        sa.Column('transaction_reference', sa.String(100), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='confirmed'),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('recorded_by', UUID(as_uuid=True),
                  sa.ForeignKey('internal_users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_client_payments_amount_positive'),
        sa.CheckConstraint('referral_id IS NOT NULL OR lead_id IS NOT NULL',
                           name='ck_client_payments_target'),
    )

    # Payouts
    op.create_table(
        'partner_payouts',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('partner_id', UUID(as_uuid=True),
                  sa.ForeignKey('partners.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('referral_id', UUID(as_uuid=True),
                  sa.ForeignKey('referrals.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('amount_paid', sa.Numeric(15, 2), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending',
                  comment='pending, processing, paid, failed, cancelled'),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_by', UUID(as_uuid=True),
                  sa.ForeignKey('internal_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('proof_of_payment_url', sa.String(500), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('version', sa.Integer, nullable=False, server_default='1',
                  comment='Optimistic lock counter'),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_partner_payouts_amount_positive'),
    )
    op.create_index('ix_partner_payouts_partner_status', 'partner_payouts', ['partner_id', 'status'])
    # At most one pending/processing payout per referral
    op.create_index(
        'uq_partner_payouts_active_referral',
        'partner_payouts',
        ['referral_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'processing')"),
    )

    # Notifications
    op.create_table(
        'notifications',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('recipient_type', sa.String(20), nullable=False, comment='partner, internal'),
        sa.Column('partner_id', UUID(as_uuid=True),
                  sa.ForeignKey('partners.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('notification_type', sa.String(50), nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('entity_id', UUID(as_uuid=True), nullable=True),
        sa.Column('extra_data', JSONB, nullable=True),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_recipient_unread', 'notifications', ['recipient_type', 'is_read'])

    # Audit trail
    op.create_table(
        'audit_logs',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('actor_id', UUID(as_uuid=True), nullable=True),
        sa.Column('actor_type', sa.String(20), nullable=True, comment='partner, internal'),
        sa.Column('action', sa.String(50), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False, index=True),
        sa.Column('entity_id', UUID(as_uuid=True), nullable=True),
        sa.Column('old_values', JSONB, nullable=True),
        sa.Column('new_values', JSONB, nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_index('ix_notifications_recipient_unread', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('uq_partner_payouts_active_referral', table_name='partner_payouts')
    op.drop_index('ix_partner_payouts_partner_status', table_name='partner_payouts')
    op.drop_table('partner_payouts')
    op.drop_table('client_payments')
    op.drop_table('lead_activities')
    op.drop_table('leads')
    op.drop_index('ix_referrals_partner_status', table_name='referrals')
    op.drop_table('referrals')
    op.drop_table('internal_users')
    op.drop_table('partners')
