"""Show the full OGSM hierarchy."""
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ogsm_manager import create_app
from ogsm_manager.models.ogsm import COMPONENT_TYPES, OGSMComponent
from ogsm_manager.services.ogsm_service import build_hierarchy_tree

_TAG = {"objective": "O", "goal": "G", "strategy": "S", "measure": "M"}

app = create_app(os.getenv("APP_ENV", "development"))
with app.app_context():
    rows = build_hierarchy_tree()
    children = {}
    for row in rows:
        children.setdefault(row["parent_id"], []).append(row)

    def show(parent_id, indent):
        for row in children.get(parent_id, []):
            print(f"{'  ' * indent}{_TAG[row['component_type']]} [{row['order_index']}] {row['title']}  ({row['id']})")
            show(row["id"], indent + 1)

    show(None, 0)

    print(f"\n--- Totals ---")
    for t in COMPONENT_TYPES:
        print(f"{t.title() + 's':<12} {OGSMComponent.query.filter_by(component_type=t).count()}")
    print(f"{'In tree':<12} {len(rows)}")
