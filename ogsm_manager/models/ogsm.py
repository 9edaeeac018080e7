"""
OGSM Models

OGSMComponent (Objective / Goal / Strategy / Measure, self-referential forest)
and OGSMTemplate (reusable component structure expanded on apply).
"""

import uuid
from datetime import datetime, timezone

from ogsm_manager.models import db


__all__ = [
    "COMPONENT_TYPES",
    "ALLOWED_PARENT_TYPES",
    "OGSMComponent",
    "OGSMTemplate",
]


# ── Constants ────────────────────────────────────────────────────────────────

COMPONENT_TYPES = ("objective", "goal", "strategy", "measure")

# child type -> parent types it may hang under. Objectives are unconstrained.
ALLOWED_PARENT_TYPES = {
    "goal": frozenset({"objective"}),
    "strategy": frozenset({"goal", "objective"}),
    "measure": frozenset({"strategy", "goal", "objective"}),
}


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ═════════════════════════════════════════════════════════════════════════════
# 1. OGSMComponent — one node of the OGSM hierarchy
# ═════════════════════════════════════════════════════════════════════════════

class OGSMComponent(db.Model):
    """
    A single objective, goal, strategy or measure.

    parent_id links form a forest. Children are removed by the database when
    their parent is deleted (ON DELETE CASCADE), not by application code.
    component_type never changes after insert.
    """

    __tablename__ = "ogsm_components"
    __table_args__ = (
        db.Index("idx_ogsm_parent_order", "parent_id", "order_index"),
        db.CheckConstraint(
            "component_type IN ('objective', 'goal', 'strategy', 'measure')",
            name="ck_ogsm_component_type",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    document_id = db.Column(
        db.String(36), nullable=True, index=True,
        comment="Originating source document, if the component was ingested",
    )
    component_type = db.Column(
        db.String(20), nullable=False, index=True,
        comment="objective | goal | strategy | measure",
    )
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    parent_id = db.Column(
        db.String(36), db.ForeignKey("ogsm_components.id", ondelete="CASCADE"),
        nullable=True, comment="NULL for roots",
    )
    order_index = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "document_id": self.document_id,
            "component_type": self.component_type,
            "title": self.title,
            "description": self.description,
            "parent_id": self.parent_id,
            "order_index": self.order_index,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<OGSMComponent {self.component_type}:{self.id} {self.title!r}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. OGSMTemplate — reusable structure of nested components
# ═════════════════════════════════════════════════════════════════════════════

class OGSMTemplate(db.Model):
    """
    Template holding a nested list of component nodes:

        [{"component_type": "objective", "title": "...", "description": "...",
          "children": [{"component_type": "goal", ...}]}]

    Applying a template inserts one OGSMComponent per node.
    """

    __tablename__ = "ogsm_templates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    category = db.Column(db.String(100), nullable=True, index=True)
    structure = db.Column(db.JSON, nullable=False)
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    created_by = db.Column(db.String(100), nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)
    # "metadata" is reserved on declarative classes
    template_metadata = db.Column("metadata", db.JSON, nullable=True)
    usage_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "structure": self.structure,
            "is_public": self.is_public,
            "created_by": self.created_by,
            "tags": self.tags or [],
            "metadata": self.template_metadata,
            "usage_count": self.usage_count,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
