"""Create post_likes table with one soft-deletable row per user and post."""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "20241021_0003"
down_revision: str | None = "20241021_0002"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

TIMESTAMP_DEFAULT = sa.text("CURRENT_TIMESTAMP")


def upgrade() -> None:
    op.create_table(
        "post_likes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("liked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "is_deleted",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=TIMESTAMP_DEFAULT,
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=TIMESTAMP_DEFAULT,
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "post_id", name="ux_post_likes_user_post"),
    )
    op.create_index(
        "ix_post_likes_post_is_deleted",
        "post_likes",
        ["post_id", "is_deleted"],
        unique=False,
    )
    op.create_index(
        "ix_post_likes_user_liked_at",
        "post_likes",
        ["user_id", "liked_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_post_likes_user_liked_at", table_name="post_likes")
    op.drop_index("ix_post_likes_post_is_deleted", table_name="post_likes")
    op.drop_table("post_likes")
