"""Create posts table with availability indexes."""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "20241021_0002"
down_revision: str | None = "20241021_0001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

TIMESTAMP_DEFAULT = sa.text("CURRENT_TIMESTAMP")


def upgrade() -> None:
    op.create_table(
        "posts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("available_at", sa.DateTime(timezone=True), nullable=False),
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
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_posts_available_at_id",
        "posts",
        ["available_at", "id"],
        unique=False,
    )
    op.create_index(
        "ix_posts_user_available_at",
        "posts",
        ["user_id", "available_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_posts_user_available_at", table_name="posts")
    op.drop_index("ix_posts_available_at_id", table_name="posts")
    op.drop_table("posts")
