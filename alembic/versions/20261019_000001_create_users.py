"""Create users table.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Members and their binary tree links.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_000001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create users table."""
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column(
            'first_name',
            sa.String(length=100),
            nullable=False,
            server_default='',
        ),
        sa.Column(
            'last_name',
            sa.String(length=100),
            nullable=False,
            server_default='',
        ),
        sa.Column('document_number', sa.String(length=20), nullable=True),
        sa.Column(
            'referral_code',
            sa.String(length=20),
            nullable=False,
            comment='Uppercase code sponsors hand out',
        ),
        sa.Column(
            'referrer_code',
            sa.String(length=20),
            nullable=True,
            comment='Sponsor code given at registration',
        ),
        sa.Column(
            'parent_id',
            sa.Uuid(),
            nullable=True,
            comment='Binary parent, NULL only for the root',
        ),
        sa.Column(
            'left_child_id',
            sa.Uuid(),
            nullable=True,
            comment='LEFT slot reservation, written once',
        ),
        sa.Column(
            'right_child_id',
            sa.Uuid(),
            nullable=True,
            comment='RIGHT slot reservation, written once',
        ),
        sa.Column(
            'position',
            sa.String(length=5),
            nullable=True,
            comment='LEFT or RIGHT under the parent',
        ),
        sa.Column(
            'is_active',
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
        ),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.ForeignKeyConstraint(['parent_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('left_child_id'),
        sa.UniqueConstraint('right_child_id'),
        sa.UniqueConstraint(
            'parent_id', 'position', name='uq_users_parent_position'
        ),
        sa.CheckConstraint(
            "position IN ('LEFT', 'RIGHT')",
            name='check_user_position'
        ),
        sa.CheckConstraint(
            '(parent_id IS NULL) = (position IS NULL)',
            name='check_user_parent_has_position'
        ),
        sa.CheckConstraint(
            'left_child_id IS NULL OR left_child_id <> id',
            name='check_user_left_child_not_self'
        ),
        sa.CheckConstraint(
            'right_child_id IS NULL OR right_child_id <> id',
            name='check_user_right_child_not_self'
        ),
        sa.CheckConstraint(
            'left_child_id IS NULL OR right_child_id IS NULL '
            'OR left_child_id <> right_child_id',
            name='check_user_children_distinct'
        ),
    )

    # Create indexes
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index(
        'ix_users_referral_code', 'users', ['referral_code'], unique=True
    )
    op.create_index('ix_users_referrer_code', 'users', ['referrer_code'])
    op.create_index('ix_users_parent_id', 'users', ['parent_id'])
    op.create_index('ix_users_position', 'users', ['position'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])
    op.create_index(
        'ix_users_referrer_code_active',
        'users',
        ['referrer_code', 'is_active']
    )
    # At most one root
    op.create_index(
        'uq_users_single_root',
        'users',
        [sa.text('(parent_id IS NULL)')],
        unique=True,
        postgresql_where=sa.text('parent_id IS NULL'),
    )


def downgrade() -> None:
    """Drop users table."""
    op.drop_index('uq_users_single_root', table_name='users')
    op.drop_index('ix_users_referrer_code_active', table_name='users')
    op.drop_index('ix_users_is_active', table_name='users')
    op.drop_index('ix_users_position', table_name='users')
    op.drop_index('ix_users_parent_id', table_name='users')
    op.drop_index('ix_users_referrer_code', table_name='users')
    op.drop_index('ix_users_referral_code', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
