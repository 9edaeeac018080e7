"""
OGSM Manager
Tests — OGSM template API.

Covers:
    - Template CRUD + filters + ordering
    - Structure validation (shape, types, hierarchy, node path)
    - Apply: component creation, parents, order, usage_count, no partial writes
"""

import pytest

from ogsm_manager.models import db as _db
from ogsm_manager.models.ogsm import OGSMComponent, OGSMTemplate

BASE = "/api/v1/ogsm-templates"

STRUCTURE = [
    {
        "component_type": "objective",
        "title": "Be the market leader",
        "description": "Five-year ambition",
        "children": [
            {
                "component_type": "goal",
                "title": "Market share 30%",
                "children": [
                    {"component_type": "strategy", "title": "Partner channel"},
                    {
                        "component_type": "strategy",
                        "title": "Direct sales",
                        "children": [{"component_type": "measure", "title": "Deals closed"}],
                    },
                ],
            },
        ],
    },
    {"component_type": "objective", "title": "Delight customers"},
]


def _create_template(client, **kw):
    payload = {"name": "Growth plan", "structure": STRUCTURE, "category": "growth"}
    payload.update(kw)
    res = client.post(BASE, json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════════

class TestTemplateCRUD:
    def test_create(self, client):
        t = _create_template(client, tags=["sales"], metadata={"source": "workshop"})
        assert t["name"] == "Growth plan"
        assert t["structure"] == STRUCTURE
        assert t["is_public"] is True
        assert t["tags"] == ["sales"]
        assert t["metadata"] == {"source": "workshop"}
        assert t["usage_count"] == 0

    def test_create_private(self, client):
        t = _create_template(client, is_public=False)
        assert t["is_public"] is False

    @pytest.mark.parametrize("payload", [
        {"structure": STRUCTURE},
        {"name": "No structure"},
        {"name": "  ", "structure": STRUCTURE},
    ])
    def test_create_missing_fields(self, client, payload):
        res = client.post(BASE, json=payload)
        assert res.status_code == 400
        assert res.get_json()["error"] == "name and structure are required"
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_create_bad_tags(self, client):
        res = client.post(BASE, json={"name": "T", "structure": STRUCTURE, "tags": "x"})
        assert res.status_code == 400

    def test_get(self, client):
        t = _create_template(client)
        res = client.get(f"{BASE}/{t['id']}")
        assert res.status_code == 200
        assert res.get_json()["id"] == t["id"]

    def test_get_not_found(self, client):
        res = client.get(f"{BASE}/missing")
        assert res.status_code == 404
        assert res.get_json()["error"] == "Template not found"

    def test_list_filters(self, client):
        _create_template(client, name="Public growth")
        _create_template(client, name="Private growth", is_public=False)
        _create_template(client, name="Ops", category="operations")

        assert len(client.get(BASE).get_json()) == 3
        growth = client.get(f"{BASE}?category=growth").get_json()
        assert {t["name"] for t in growth} == {"Public growth", "Private growth"}
        private = client.get(f"{BASE}?is_public=false").get_json()
        assert [t["name"] for t in private] == ["Private growth"]

    def test_list_most_used_first(self, client):
        a = _create_template(client, name="A")
        b = _create_template(client, name="B")
        client.post(f"{BASE}/{a['id']}/apply", json={})
        client.post(f"{BASE}/{a['id']}/apply", json={})
        client.post(f"{BASE}/{b['id']}/apply", json={})
        names = [t["name"] for t in client.get(BASE).get_json()]
        assert names == ["A", "B"]

    def test_update(self, client):
        t = _create_template(client)
        res = client.put(f"{BASE}/{t['id']}", json={
            "name": "Renamed", "tags": ["x"], "is_public": False, "category": None,
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["name"] == "Renamed"
        assert data["tags"] == ["x"]
        assert data["is_public"] is False
        assert data["category"] == "growth"

    def test_update_invalid_structure(self, client):
        t = _create_template(client)
        res = client.put(f"{BASE}/{t['id']}", json={"structure": [{"component_type": "goal"}]})
        assert res.status_code == 400
        assert client.get(f"{BASE}/{t['id']}").get_json()["structure"] == STRUCTURE

    def test_update_blank_name(self, client):
        t = _create_template(client)
        assert client.put(f"{BASE}/{t['id']}", json={"name": ""}).status_code == 400

    @pytest.mark.parametrize("payload,field", [
        ({"is_public": "false"}, "is_public"),
        ({"is_public": 0}, "is_public"),
        ({"tags": "sales"}, "tags"),
    ])
    def test_update_field_types(self, client, payload, field):
        t = _create_template(client, tags=["a"])
        res = client.put(f"{BASE}/{t['id']}", json=payload)
        assert res.status_code == 400
        assert res.get_json()["details"] == {"field": field}
        stored = client.get(f"{BASE}/{t['id']}").get_json()
        assert stored["is_public"] is True
        assert stored["tags"] == ["a"]

    def test_create_is_public_must_be_bool(self, client):
        res = client.post(BASE, json={"name": "T", "structure": STRUCTURE, "is_public": "no"})
        assert res.status_code == 400
        assert client.get(BASE).get_json() == []

    def test_long_name_stored_in_full(self, client):
        t = _create_template(client, name="N" * 300)
        assert client.get(f"{BASE}/{t['id']}").get_json()["name"] == "N" * 300

    def test_body_must_be_object(self, client):
        res = client.post(BASE, json=[{"name": "T", "structure": STRUCTURE}])
        assert res.status_code == 400
        assert res.get_json()["error"] == "Request body must be a JSON object"

    def test_update_not_found(self, client):
        assert client.put(f"{BASE}/missing", json={"name": "x"}).status_code == 404

    def test_delete(self, client):
        t = _create_template(client)
        res = client.delete(f"{BASE}/{t['id']}")
        assert res.status_code == 200
        assert res.get_json() == {"message": "Template deleted successfully"}
        assert client.get(f"{BASE}/{t['id']}").status_code == 404

    def test_delete_not_found(self, client):
        assert client.delete(f"{BASE}/missing").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# STRUCTURE VALIDATION
# ═════════════════════════════════════════════════════════════════════════════

class TestStructureValidation:
    def test_not_a_list(self, client):
        res = client.post(BASE, json={"name": "T", "structure": {"component_type": "goal"}})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Invalid template structure"

    def test_unknown_type_reports_path(self, client):
        structure = [{"component_type": "objective", "title": "O", "children": [
            {"component_type": "goal", "title": "G"},
            {"component_type": "kpi", "title": "K"},
        ]}]
        res = client.post(BASE, json={"name": "T", "structure": structure})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"path": "structure[0].children[1]"}

    def test_missing_title(self, client):
        res = client.post(BASE, json={"name": "T", "structure": [{"component_type": "goal"}]})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Template node title is required"

    def test_disallowed_child_type(self, client):
        structure = [{"component_type": "measure", "title": "M", "children": [
            {"component_type": "strategy", "title": "S"},
        ]}]
        res = client.post(BASE, json={"name": "T", "structure": structure})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Invalid hierarchy: strategy cannot be a child of measure"

    def test_children_not_a_list(self, client):
        structure = [{"component_type": "objective", "title": "O", "children": "G"}]
        res = client.post(BASE, json={"name": "T", "structure": structure})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"path": "structure[0]"}

    def test_node_not_an_object(self, client):
        res = client.post(BASE, json={"name": "T", "structure": ["objective"]})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Template node must be an object"

    def test_nothing_stored_on_failure(self, client):
        client.post(BASE, json={"name": "T", "structure": [{"component_type": "x", "title": "X"}]})
        assert client.get(BASE).get_json() == []


# ═════════════════════════════════════════════════════════════════════════════
# APPLY
# ═════════════════════════════════════════════════════════════════════════════

class TestApplyTemplate:
    def test_apply_creates_structure(self, client):
        t = _create_template(client)
        res = client.post(f"{BASE}/{t['id']}/apply", json={"document_id": "doc-9"})
        assert res.status_code == 201
        body = res.get_json()
        assert body["message"] == "Components created from template successfully"

        created = body["components"]
        assert [c["title"] for c in created] == [
            "Be the market leader",
            "Market share 30%",
            "Partner channel",
            "Direct sales",
            "Deals closed",
            "Delight customers",
        ]
        by_title = {c["title"]: c for c in created}
        assert by_title["Be the market leader"]["parent_id"] is None
        assert by_title["Be the market leader"]["description"] == "Five-year ambition"
        assert by_title["Market share 30%"]["parent_id"] == by_title["Be the market leader"]["id"]
        assert by_title["Direct sales"]["parent_id"] == by_title["Market share 30%"]["id"]
        assert by_title["Deals closed"]["parent_id"] == by_title["Direct sales"]["id"]
        assert by_title["Delight customers"]["order_index"] == 1
        assert by_title["Partner channel"]["order_index"] == 0
        assert by_title["Direct sales"]["order_index"] == 1
        assert all(c["document_id"] == "doc-9" for c in created)

    def test_apply_feeds_tree(self, client):
        t = _create_template(client)
        client.post(f"{BASE}/{t['id']}/apply", json={})
        rows = client.get("/api/v1/ogsm/hierarchy/tree").get_json()
        assert [(r["title"], r["level"]) for r in rows] == [
            ("Be the market leader", 0),
            ("Delight customers", 0),
            ("Market share 30%", 1),
            ("Partner channel", 2),
            ("Direct sales", 2),
            ("Deals closed", 3),
        ]

    def test_apply_increments_usage(self, client):
        t = _create_template(client)
        client.post(f"{BASE}/{t['id']}/apply", json={})
        client.post(f"{BASE}/{t['id']}/apply")
        assert client.get(f"{BASE}/{t['id']}").get_json()["usage_count"] == 2
        assert len(client.get("/api/v1/ogsm").get_json()) == 12

    def test_apply_not_found(self, client):
        res = client.post(f"{BASE}/missing/apply", json={})
        assert res.status_code == 404
        assert res.get_json()["details"] == {"id": "missing"}

    def test_apply_body_must_be_object(self, client):
        t = _create_template(client)
        res = client.post(f"{BASE}/{t['id']}/apply", json=["doc-1"])
        assert res.status_code == 400
        assert client.get(f"{BASE}/{t['id']}").get_json()["usage_count"] == 0

    def test_apply_keeps_long_titles(self, client):
        title = "L" * 650
        t = _create_template(client, structure=[{"component_type": "objective", "title": title}])
        created = client.post(f"{BASE}/{t['id']}/apply", json={}).get_json()["components"]
        assert created[0]["title"] == title

    def test_apply_stored_invalid_structure(self, client):
        template = OGSMTemplate(name="Broken", structure={"not": "a list"})
        _db.session.add(template)
        _db.session.commit()

        res = client.post(f"{BASE}/{template.id}/apply", json={})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Invalid template structure"
        assert _db.session.get(OGSMTemplate, template.id).usage_count == 0
        assert _db.session.query(OGSMComponent).count() == 0

    def test_apply_rolls_back_on_failure(self, client, monkeypatch):
        from ogsm_manager.services import template_service

        t = _create_template(client)
        real = template_service._create_from_structure
        calls = {"n": 0}

        def flaky(nodes, document_id, parent_id):
            calls["n"] += 1
            if calls["n"] == 3:
                raise RuntimeError("connection lost")
            return real(nodes, document_id, parent_id)

        monkeypatch.setattr(template_service, "_create_from_structure", flaky)
        with pytest.raises(RuntimeError):
            template_service.apply_template(t["id"])

        assert _db.session.query(OGSMComponent).count() == 0
        assert _db.session.get(OGSMTemplate, t["id"]).usage_count == 0
