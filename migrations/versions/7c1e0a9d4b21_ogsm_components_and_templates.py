"""ogsm_components_and_templates

Create `ogsm_components` (self-referential OGSM hierarchy) and
`ogsm_templates` (reusable component structures).

Revision ID: 7c1e0a9d4b21
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e0a9d4b21"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "ogsm_components" not in existing_tables:
        op.create_table(
            "ogsm_components",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("document_id", sa.String(length=36), nullable=True),
            sa.Column("component_type", sa.String(length=20), nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("parent_id", sa.String(length=36), nullable=True),
            sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.CheckConstraint(
                "component_type IN ('objective', 'goal', 'strategy', 'measure')",
                name="ck_ogsm_component_type",
            ),
            sa.ForeignKeyConstraint(
                ["parent_id"], ["ogsm_components.id"], ondelete="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_ogsm_parent_order", "ogsm_components", ["parent_id", "order_index"])
        op.create_index("ix_ogsm_components_document_id", "ogsm_components", ["document_id"])
        op.create_index("ix_ogsm_components_component_type", "ogsm_components", ["component_type"])

    if "ogsm_templates" not in existing_tables:
        op.create_table(
            "ogsm_templates",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("category", sa.String(length=100), nullable=True),
            sa.Column("structure", sa.JSON(), nullable=False),
            sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_by", sa.String(length=100), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=False),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_ogsm_templates_category", "ogsm_templates", ["category"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "ogsm_templates" in existing_tables:
        op.drop_index("ix_ogsm_templates_category", table_name="ogsm_templates")
        op.drop_table("ogsm_templates")
    if "ogsm_components" in existing_tables:
        op.drop_index("ix_ogsm_components_component_type", table_name="ogsm_components")
        op.drop_index("ix_ogsm_components_document_id", table_name="ogsm_components")
        op.drop_index("idx_ogsm_parent_order", table_name="ogsm_components")
        op.drop_table("ogsm_components")
