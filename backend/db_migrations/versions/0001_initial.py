"""create drops and issued_codes tables"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "drops",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("filename", sa.String(), nullable=True),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("max_downloads", sa.Integer(), nullable=True),
        sa.Column("download_count", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_drops_code"), "drops", ["code"], unique=True)
    op.create_index(op.f("ix_drops_expires_at"), "drops", ["expires_at"])

    op.create_table(
        "issued_codes",
        sa.Column("code", sa.String(), primary_key=True),
        sa.Column("issued_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("issued_codes")
    op.drop_index(op.f("ix_drops_expires_at"), table_name="drops")
    op.drop_index(op.f("ix_drops_code"), table_name="drops")
    op.drop_table("drops")
