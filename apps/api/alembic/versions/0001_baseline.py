"""Baseline: tenants, clients, trips, recurring series, webhooks, permissions.

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-18

Creates:
- organizations, users, memberships
- clients, client_groups, client_group_memberships
- webhook_integrations, trip_creation_rules, webhook_event_logs
- recurring_trips (one rider CHECK), trips
- role_permissions, feature_flags
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_baseline'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*names: str) -> list[sa.Column]:
    return [
        sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        for name in names
    ]


def upgrade() -> None:
    # ==========================================================================
    # Tenants and users
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('timezone', sa.String(50), server_default='America/New_York', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('token_version', sa.Integer(), server_default='1', nullable=False),
        *_timestamps('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'memberships',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps('created_at'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index('idx_memberships_org_id', 'memberships', ['organization_id'])

    # ==========================================================================
    # Clients
    # ==========================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=False),
        sa.Column('last_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps('created_at'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_clients_org_active', 'clients', ['organization_id', 'is_active'])

    op.create_table(
        'client_groups',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps('created_at'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'client_group_memberships',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('client_group_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        *_timestamps('joined_at'),
        sa.ForeignKeyConstraint(['client_group_id'], ['client_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('client_group_id', 'client_id', name='uq_client_group_member'),
    )

    # ==========================================================================
    # Webhook integrations
    # ==========================================================================
    op.create_table(
        'webhook_integrations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('secret_key_encrypted', sa.Text(), nullable=True),
        sa.Column('filter_keywords', sa.JSON(), nullable=False),
        sa.Column('filter_attendees', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps('created_at'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_webhook_integrations_org', 'webhook_integrations', ['organization_id'])

    op.create_table(
        'trip_creation_rules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('integration_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), server_default='Default rule', nullable=False),
        sa.Column('pickup_offset_minutes', sa.Integer(), server_default='0', nullable=False),
        sa.Column('default_pickup_location', sa.Text(), nullable=True),
        sa.Column('trip_type', sa.String(20), server_default='one_way', nullable=False),
        sa.Column('requires_approval', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps('created_at'),
        sa.ForeignKeyConstraint(['integration_id'], ['webhook_integrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_trip_creation_rules_integration',
        'trip_creation_rules',
        ['integration_id', 'is_active'],
    )

    op.create_table(
        'webhook_event_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('integration_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('external_event_id', sa.String(255), nullable=True),
        sa.Column('event_data', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('outcome', sa.String(30), nullable=True),
        sa.Column('trips_created', sa.JSON(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        *_timestamps('created_at'),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['integration_id'], ['webhook_integrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_webhook_event_logs_org_created',
        'webhook_event_logs',
        ['organization_id', 'created_at'],
    )

    # ==========================================================================
    # Recurring series and trips
    # ==========================================================================
    op.create_table(
        'recurring_trips',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('client_group_id', sa.Uuid(), nullable=True),
        sa.Column('day_of_week', sa.SmallInteger(), nullable=False),
        sa.Column('scheduled_time', sa.String(5), nullable=False),
        sa.Column('pickup_address', sa.Text(), nullable=False),
        sa.Column('dropoff_address', sa.Text(), nullable=False),
        sa.Column('is_round_trip', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('frequency', sa.String(20), server_default='weekly', nullable=False),
        sa.Column('duration_weeks', sa.Integer(), nullable=False),
        sa.Column('trip_nickname', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_by_user_id', sa.Uuid(), nullable=True),
        *_timestamps('created_at', 'updated_at'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['client_group_id'], ['client_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            '(client_id IS NULL) <> (client_group_id IS NULL)',
            name='ck_recurring_trips_one_rider',
        ),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_recurring_trips_day_of_week'),
    )
    op.create_index(
        'idx_recurring_trips_org_active',
        'recurring_trips',
        ['organization_id', 'is_active'],
    )

    op.create_table(
        'trips',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=True),
        sa.Column('client_group_id', sa.Uuid(), nullable=True),
        sa.Column('client_group_name', sa.String(255), nullable=True),
        sa.Column('pickup_address', sa.Text(), nullable=False),
        sa.Column('dropoff_address', sa.Text(), nullable=False),
        sa.Column('scheduled_pickup_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('trip_type', sa.String(20), server_default='one_way', nullable=False),
        sa.Column('trip_nickname', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), server_default='scheduled', nullable=False),
        sa.Column('recurring_trip_id', sa.Uuid(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('source', sa.String(20), server_default='manual', nullable=False),
        sa.Column('webhook_integration_id', sa.Uuid(), nullable=True),
        sa.Column('external_event_id', sa.String(255), nullable=True),
        sa.Column('actual_pickup_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_dropoff_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by_user_id', sa.Uuid(), nullable=True),
        *_timestamps('created_at', 'updated_at'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['client_group_id'], ['client_groups.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['recurring_trip_id'], ['recurring_trips.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(
            ['webhook_integration_id'], ['webhook_integrations.id'], ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_trips_org_pickup', 'trips', ['organization_id', 'scheduled_pickup_time'])
    op.create_index('idx_trips_recurring', 'trips', ['recurring_trip_id', 'scheduled_pickup_time'])
    op.create_index(
        'idx_trips_webhook_event',
        'trips',
        ['webhook_integration_id', 'external_event_id'],
    )

    # ==========================================================================
    # Permissions
    # ==========================================================================
    op.create_table(
        'role_permissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=True),
        sa.Column('role', sa.String(50), nullable=False),
        sa.Column('permission', sa.String(100), nullable=False),
        sa.Column('is_granted', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps('created_at', 'updated_at'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'organization_id', 'role', 'permission',
            name='uq_role_permissions_org_role_perm',
        ),
    )
    op.create_index(
        'idx_role_permissions_org_role',
        'role_permissions',
        ['organization_id', 'role'],
    )

    op.create_table(
        'feature_flags',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('flag_name', sa.String(100), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=True),
        sa.Column('is_enabled', sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps('updated_at'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('flag_name', 'organization_id', name='uq_feature_flags_name_org'),
    )


def downgrade() -> None:
    op.drop_table('feature_flags')
    op.drop_index('idx_role_permissions_org_role', table_name='role_permissions')
    op.drop_table('role_permissions')
    op.drop_index('idx_trips_webhook_event', table_name='trips')
    op.drop_index('idx_trips_recurring', table_name='trips')
    op.drop_index('idx_trips_org_pickup', table_name='trips')
    op.drop_table('trips')
    op.drop_index('idx_recurring_trips_org_active', table_name='recurring_trips')
    op.drop_table('recurring_trips')
    op.drop_index('idx_webhook_event_logs_org_created', table_name='webhook_event_logs')
    op.drop_table('webhook_event_logs')
    op.drop_index('idx_trip_creation_rules_integration', table_name='trip_creation_rules')
    op.drop_table('trip_creation_rules')
    op.drop_index('idx_webhook_integrations_org', table_name='webhook_integrations')
    op.drop_table('webhook_integrations')
    op.drop_table('client_group_memberships')
    op.drop_table('client_groups')
    op.drop_index('idx_clients_org_active', table_name='clients')
    op.drop_table('clients')
    op.drop_index('idx_memberships_org_id', table_name='memberships')
    op.drop_table('memberships')
    op.drop_table('users')
    op.drop_table('organizations')
