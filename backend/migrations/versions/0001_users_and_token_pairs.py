"""create users and token_pairs

Revision ID: 0001_users_token_pairs
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '0001_users_token_pairs'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.String(length=254), nullable=False),
        sa.Column('roles', sa.JSON(), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('username', name='uq_users_username'),
    )
    op.create_table(
        'token_pairs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('access_token', sa.String(length=1024), nullable=False),
        sa.Column('refresh_token', sa.String(length=1024), nullable=False),
        sa.Column('blacklisted', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('CURRENT_TIMESTAMP'),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ['user_id'],
            ['users.id'],
            name=op.f('fk_token_pairs_user_id_users'),
            ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_token_pairs')),
        sa.UniqueConstraint('access_token', name='uq_token_pairs_access_token'),
        sa.UniqueConstraint('refresh_token', name='uq_token_pairs_refresh_token'),
    )
    with op.batch_alter_table('token_pairs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_token_pairs_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_token_pairs_created_at', ['created_at'], unique=False)


def downgrade():
    with op.batch_alter_table('token_pairs', schema=None) as batch_op:
        batch_op.drop_index('ix_token_pairs_created_at')
        batch_op.drop_index(batch_op.f('ix_token_pairs_user_id'))
    op.drop_table('token_pairs')
    op.drop_table('users')
