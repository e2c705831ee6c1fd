"""initial_schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _base_indexes(table: str) -> None:
    op.create_index(f'ix_{table}_id', table, ['id'])
    op.create_index(f'ix_{table}_created_at', table, ['created_at'])


def upgrade() -> None:
    user_role = sa.Enum('student', 'teacher', 'admin', name='user_role')
    media_type = sa.Enum('image', 'video', name='media_type')
    post_visibility = sa.Enum('everyone', 'collegeOnly', 'studentsOnly', name='post_visibility')

    # ---------- users ----------
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('college_id', sa.String(100), nullable=False),
        sa.Column('college_name', sa.String(200), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('avatar', sa.String(500), nullable=False, server_default=''),
        sa.Column('bio', sa.String(200), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('users')
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_college_id', 'users', ['college_id'])
    op.create_index('ix_users_role', 'users', ['role'])

    # ---------- posts ----------
    op.create_table(
        'posts',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('caption', sa.String(2000), nullable=True),
        sa.Column('media_url', sa.Text(), nullable=False),
        sa.Column('media_type', media_type, nullable=False),
        sa.Column('media_public_id', sa.String(255), nullable=False),
        sa.Column('visibility', post_visibility, nullable=False),
        sa.Column('likes_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('comments_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('likes_count >= 0', name='ck_posts_likes_count_non_negative'),
        sa.CheckConstraint('comments_count >= 0', name='ck_posts_comments_count_non_negative'),
    )
    _base_indexes('posts')
    op.create_index('ix_posts_user_id', 'posts', ['user_id'])
    op.create_index('ix_posts_visibility', 'posts', ['visibility'])

    # ---------- post_hashtags ----------
    op.create_table(
        'post_hashtags',
        *_base_columns(),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('tag', sa.String(100), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('post_id', 'tag', name='uq_post_hashtags_post_tag'),
    )
    _base_indexes('post_hashtags')
    op.create_index('ix_post_hashtags_post_id', 'post_hashtags', ['post_id'])
    op.create_index('ix_post_hashtags_tag', 'post_hashtags', ['tag'])

    # ---------- likes ----------
    op.create_table(
        'likes',
        *_base_columns(),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('post_id', 'user_id', name='uq_likes_post_user'),
    )
    _base_indexes('likes')
    op.create_index('ix_likes_post_id', 'likes', ['post_id'])
    op.create_index('ix_likes_user_id', 'likes', ['user_id'])

    # ---------- comments ----------
    op.create_table(
        'comments',
        *_base_columns(),
        sa.Column('post_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.String(500), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('comments')
    op.create_index('ix_comments_post_id', 'comments', ['post_id'])
    op.create_index('ix_comments_user_id', 'comments', ['user_id'])

    # ---------- follows ----------
    op.create_table(
        'follows',
        *_base_columns(),
        sa.Column('follower_id', sa.Uuid(), nullable=False),
        sa.Column('following_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['follower_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['following_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('follower_id', 'following_id', name='uq_follows_pair'),
        sa.CheckConstraint('follower_id <> following_id', name='ck_follows_not_self'),
    )
    _base_indexes('follows')
    op.create_index('ix_follows_follower_id', 'follows', ['follower_id'])
    op.create_index('ix_follows_following_id', 'follows', ['following_id'])

    # ---------- notifications ----------
    op.create_table(
        'notifications',
        *_base_columns(),
        sa.Column('sender_id', sa.Uuid(), nullable=False),
        sa.Column('receiver_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('post_id', sa.Uuid(), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('seen', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    _base_indexes('notifications')
    op.create_index('ix_notifications_sender_id', 'notifications', ['sender_id'])
    op.create_index('ix_notifications_receiver_id', 'notifications', ['receiver_id'])
    op.create_index('ix_notifications_post_id', 'notifications', ['post_id'])
    op.create_index('ix_notifications_seen', 'notifications', ['seen'])


def downgrade() -> None:
    for table in ('notifications', 'follows', 'comments', 'likes', 'post_hashtags', 'posts', 'users'):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_name in ('post_visibility', 'media_type', 'user_role'):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
