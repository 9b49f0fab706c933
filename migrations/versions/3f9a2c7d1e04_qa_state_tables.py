"""QA state tables — qa_states + content_items

Revision ID: 3f9a2c7d1e04
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f9a2c7d1e04"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ── QaState table ──
    op.create_table(
        "qa_states",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_type", sa.String(80), nullable=False),
        sa.Column("status", sa.String(80), nullable=True),
        sa.Column("progress", sa.JSON(), nullable=False),
        sa.Column("translation_progress", sa.JSON(), nullable=False),
        sa.Column("manual_flags", sa.JSON(), nullable=False),
        sa.Column("attribute_approvals", sa.JSON(), nullable=False),
        sa.Column("attribute_proofs", sa.JSON(), nullable=False),
        sa.Column("approval_progress", sa.Integer(), nullable=True),
        sa.Column("proofing_progress", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_qa_states_item_type", "qa_states", ["item_type"])
    op.create_index("ix_qa_states_status", "qa_states", ["status"])

    # ── ContentItem table ──
    op.create_table(
        "content_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("slug", sa.String(255), nullable=True),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("translations", sa.JSON(), nullable=False),
        sa.Column(
            "qa_state_id", sa.Integer(),
            sa.ForeignKey("qa_states.id", name="content_items_qa_state_id_fk", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_content_items_slug", "content_items", ["slug"])
    op.create_index("ix_content_items_qa_state_id", "content_items", ["qa_state_id"])


def downgrade():
    op.drop_index("ix_content_items_qa_state_id", table_name="content_items")
    op.drop_index("ix_content_items_slug", table_name="content_items")
    op.drop_table("content_items")

    op.drop_index("ix_qa_states_status", table_name="qa_states")
    op.drop_index("ix_qa_states_item_type", table_name="qa_states")
    op.drop_table("qa_states")
