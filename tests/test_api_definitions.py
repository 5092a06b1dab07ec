"""
Service Assurance Tracker
Tests — Definitions API (service standards + professions).
"""


def _standard(client, number=1, name="Understand users and their needs", **kw):
    res = client.post("/api/v1/service-standards", json={"number": number, "name": name, **kw})
    assert res.status_code == 201
    return res.get_json()


class TestServiceStandards:
    def test_create_standard(self, client):
        data = _standard(client, description="Research with real users")
        assert data["number"] == 1
        assert data["is_active"] is True
        assert data["description"] == "Research with real users"

    def test_duplicate_number_conflicts(self, client):
        _standard(client)
        res = client.post("/api/v1/service-standards", json={"number": 1, "name": "Other"})
        assert res.status_code == 409
        assert res.get_json()["details"] == {"number": 1}

    def test_create_requires_name_and_number(self, client):
        assert client.post("/api/v1/service-standards", json={"number": 2}).status_code == 400
        assert client.post("/api/v1/service-standards", json={"name": "X"}).status_code == 400
        assert client.post("/api/v1/service-standards", json={"name": "X", "number": 0}).status_code == 400

    def test_list_ordered_by_number(self, client):
        _standard(client, number=3, name="Third")
        _standard(client, number=1, name="First")
        res = client.get("/api/v1/service-standards")
        assert [s["number"] for s in res.get_json()] == [1, 3]

    def test_update_standard(self, client):
        created = _standard(client)
        res = client.put(f"/api/v1/service-standards/{created['id']}", json={"name": "Renamed", "number": 5})
        assert res.status_code == 200
        assert res.get_json()["name"] == "Renamed"
        assert res.get_json()["number"] == 5

    def test_update_number_clash(self, client):
        _standard(client, number=1)
        second = _standard(client, number=2, name="Second")
        res = client.put(f"/api/v1/service-standards/{second['id']}", json={"number": 1})
        assert res.status_code == 409

    def test_delete_deactivates(self, client):
        created = _standard(client)
        res = client.delete(f"/api/v1/service-standards/{created['id']}")
        assert res.status_code == 200
        assert res.get_json()["is_active"] is False
        assert client.get("/api/v1/service-standards").get_json() == []
        listed = client.get("/api/v1/service-standards?includeInactive=true").get_json()
        assert [s["id"] for s in listed] == [created["id"]]

    def test_restore(self, client):
        created = _standard(client)
        client.delete(f"/api/v1/service-standards/{created['id']}")
        res = client.post(f"/api/v1/service-standards/{created['id']}/restore")
        assert res.status_code == 200
        assert res.get_json()["is_active"] is True

    def test_get_missing(self, client):
        assert client.get("/api/v1/service-standards/99999").status_code == 404

    def test_seed_upserts_by_number(self, client):
        created = _standard(client, number=1, name="Old name")
        client.delete(f"/api/v1/service-standards/{created['id']}")
        res = client.post("/api/v1/service-standards/seed", json=[
            {"number": 1, "name": "Understand users and their needs"},
            {"number": 2, "name": "Solve a whole problem for users"},
        ])
        assert res.status_code == 200
        seeded = res.get_json()
        assert seeded[0]["id"] == created["id"]
        assert seeded[0]["name"] == "Understand users and their needs"
        assert seeded[0]["is_active"] is True
        assert len(client.get("/api/v1/service-standards").get_json()) == 2

    def test_seed_requires_list(self, client):
        res = client.post("/api/v1/service-standards/seed", json={"number": 1, "name": "X"})
        assert res.status_code == 400


class TestProfessions:
    def test_create_derives_code(self, client):
        res = client.post("/api/v1/professions", json={"name": "User Centred Design"})
        assert res.status_code == 201
        assert res.get_json()["code"] == "user-centred-design"

    def test_duplicate_code_conflicts(self, client):
        client.post("/api/v1/professions", json={"name": "Delivery"})
        res = client.post("/api/v1/professions", json={"name": "Delivery Management", "code": "DELIVERY"})
        assert res.status_code == 409

    def test_list_ordered_by_name(self, client):
        client.post("/api/v1/professions", json={"name": "Product"})
        client.post("/api/v1/professions", json={"name": "Architecture"})
        names = [p["name"] for p in client.get("/api/v1/professions").get_json()]
        assert names == ["Architecture", "Product"]

    def test_update_code(self, client):
        created = client.post("/api/v1/professions", json={"name": "Delivery"}).get_json()
        res = client.put(f"/api/v1/professions/{created['id']}", json={"code": "Delivery Management"})
        assert res.status_code == 200
        assert res.get_json()["code"] == "delivery-management"

    def test_update_empty_code(self, client):
        created = client.post("/api/v1/professions", json={"name": "Delivery"}).get_json()
        res = client.put(f"/api/v1/professions/{created['id']}", json={"code": "  "})
        assert res.status_code == 400

    def test_deactivate_and_restore(self, client):
        created = client.post("/api/v1/professions", json={"name": "Delivery"}).get_json()
        assert client.delete(f"/api/v1/professions/{created['id']}").get_json()["is_active"] is False
        assert client.get("/api/v1/professions").get_json() == []
        assert client.post(f"/api/v1/professions/{created['id']}/restore").get_json()["is_active"] is True

    def test_seed_upserts_by_code(self, client):
        client.post("/api/v1/professions", json={"name": "Delivery"})
        res = client.post("/api/v1/professions/seed", json=[
            {"name": "Delivery", "description": "Delivery managers"},
            {"name": "Technical Architecture"},
        ])
        assert res.status_code == 200
        assert [p["code"] for p in res.get_json()] == ["delivery", "technical-architecture"]
        listed = client.get("/api/v1/professions").get_json()
        assert len(listed) == 2
        assert listed[0]["description"] == "Delivery managers"


# ═════════════════════════════════════════════════════════════════════════════
# CHANGE LEDGERS
# ═════════════════════════════════════════════════════════════════════════════

class TestStandardHistory:
    def test_creation_recorded(self, client):
        created = _standard(client, description="Research", changed_by="Sam")
        entries = client.get(f"/api/v1/service-standards/{created['id']}/history").get_json()
        assert len(entries) == 1
        assert entries[0]["standard_id"] == created["id"]
        assert entries[0]["changed_by"] == "Sam"
        assert entries[0]["changes"] == {
            "number": {"from": "", "to": 1},
            "name": {"from": "", "to": "Understand users and their needs"},
            "description": {"from": "", "to": "Research"},
            "is_active": {"from": "", "to": True},
        }

    def test_update_records_changed_fields_only(self, client):
        created = _standard(client)
        client.put(f"/api/v1/service-standards/{created['id']}", json={"name": "Renamed", "number": 1})
        entries = client.get(f"/api/v1/service-standards/{created['id']}/history").get_json()
        assert len(entries) == 2
        assert entries[0]["changes"] == {
            "name": {"from": "Understand users and their needs", "to": "Renamed"},
        }
        assert entries[0]["changed_by"] == "Definitions Admin"

    def test_no_op_update_not_recorded(self, client):
        created = _standard(client)
        client.put(f"/api/v1/service-standards/{created['id']}", json={"name": created["name"]})
        assert len(client.get(f"/api/v1/service-standards/{created['id']}/history").get_json()) == 1

    def test_deactivate_and_restore_recorded(self, client):
        created = _standard(client)
        client.delete(f"/api/v1/service-standards/{created['id']}", json={"changed_by": "Alex"})
        client.post(f"/api/v1/service-standards/{created['id']}/restore")
        entries = client.get(f"/api/v1/service-standards/{created['id']}/history").get_json()
        assert [e["changes"].get("is_active") for e in entries[:2]] == [
            {"from": False, "to": True},
            {"from": True, "to": False},
        ]
        assert entries[1]["changed_by"] == "Alex"

    def test_deactivating_twice_records_once(self, client):
        created = _standard(client)
        client.delete(f"/api/v1/service-standards/{created['id']}")
        client.delete(f"/api/v1/service-standards/{created['id']}")
        assert len(client.get(f"/api/v1/service-standards/{created['id']}/history").get_json()) == 2

    def test_seed_update_recorded(self, client):
        created = _standard(client)
        client.post("/api/v1/service-standards/seed", json=[{"number": 1, "name": "Seeded name"}])
        entries = client.get(f"/api/v1/service-standards/{created['id']}/history").get_json()
        assert entries[0]["changes"] == {
            "name": {"from": "Understand users and their needs", "to": "Seeded name"},
        }

    def test_unknown_standard(self, client):
        assert client.get("/api/v1/service-standards/999/history").status_code == 404


class TestProfessionHistory:
    def test_creation_recorded(self, client):
        created = client.post("/api/v1/professions", json={"name": "Delivery"}).get_json()
        entries = client.get(f"/api/v1/professions/{created['id']}/history").get_json()
        assert len(entries) == 1
        assert entries[0]["profession_id"] == created["id"]
        assert entries[0]["changes"] == {
            "code": {"from": "", "to": "delivery"},
            "name": {"from": "", "to": "Delivery"},
            "is_active": {"from": "", "to": True},
        }

    def test_update_newest_first(self, client):
        created = client.post("/api/v1/professions", json={"name": "Delivery"}).get_json()
        client.put(f"/api/v1/professions/{created['id']}", json={"description": "Delivery managers"})
        client.put(
            f"/api/v1/professions/{created['id']}",
            json={"code": "Delivery Management", "changed_by": "Jo"},
        )
        entries = client.get(f"/api/v1/professions/{created['id']}/history").get_json()
        assert [sorted(e["changes"]) for e in entries] == [
            ["code"],
            ["description"],
            ["code", "is_active", "name"],
        ]
        assert entries[0]["changed_by"] == "Jo"

    def test_deactivate_recorded(self, client):
        created = client.post("/api/v1/professions", json={"name": "Delivery"}).get_json()
        client.delete(f"/api/v1/professions/{created['id']}")
        entries = client.get(f"/api/v1/professions/{created['id']}/history").get_json()
        assert entries[0]["changes"] == {"is_active": {"from": True, "to": False}}

    def test_unknown_profession(self, client):
        assert client.get("/api/v1/professions/999/history").status_code == 404
