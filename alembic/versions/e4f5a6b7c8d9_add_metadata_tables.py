"""Add git_repositories, gacha_events and known_items tables.

Revision ID: e4f5a6b7c8d9
Revises:
Create Date: 2026-10-18 09:00:00.000000

gacha_events and known_items are rewritten wholesale by every metadata
refresh; git_repositories is maintained by operators.
"""

from alembic import op
import sqlalchemy as sa


revision = "e4f5a6b7c8d9"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "git_repositories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("https_url", sa.String(), nullable=False),
        sa.Column("web_url", sa.String(), nullable=False, server_default=""),
        sa.Column("type", sa.String(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_git_repositories_name", "git_repositories", ["name"])

    # ── gacha_events: one row per banner campaign ─────────────────────────
    op.create_table(
        "gacha_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("version", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("locale", sa.String(), nullable=False, server_default="CHS"),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("active_from", sa.DateTime(), nullable=False),
        sa.Column("active_to", sa.DateTime(), nullable=False),
        sa.Column("type", sa.Integer(), nullable=False),
        sa.Column("up_orange_list", sa.JSON(), nullable=False),
        sa.Column("up_purple_list", sa.JSON(), nullable=False),
    )

    # ── known_items: id → quality, ids come from the catalogs ─────────────
    op.create_table(
        "known_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("quality", sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("known_items")
    op.drop_table("gacha_events")
    op.drop_index("ix_git_repositories_name", table_name="git_repositories")
    op.drop_table("git_repositories")
