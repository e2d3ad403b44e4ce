import uuid


def _officer_json(local="L001", **overrides):
    data = {
        "district_code": "D01",
        "local_code": local,
        "last_name": "Dela Cruz",
        "first_name": "Juan",
        "birthdate": "1970-05-17",
        "registry_number": "REG-7",
        "department": {"department": "Choir", "duty": "Tenor", "oath_date": "2020-01-05"},
    }
    data.update(overrides)
    return data


def _create(client, headers, **overrides):
    resp = client.post("/officers", json=_officer_json(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestOfficerEndpoints:
    def test_intake(self, client, auth_headers):
        data = _create(client, auth_headers)
        assert data["last_name"] == "Dela Cruz"
        assert data["birthdate"] == "1970-05-17"
        assert data["status"] == "active"
        assert data["effective_classification"] == "adult"
        assert data["departments"][0]["department"] == "Choir"
        resp = client.get("/headcount/D01/L001", headers=auth_headers)
        assert resp.json()["total_count"] == 1

    def test_get_officer(self, client, auth_headers):
        created = _create(client, auth_headers)
        resp = client.get(f"/officers/{created['id']}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["id"] == created["id"]

    def test_get_officer_not_found(self, client, auth_headers):
        resp = client.get(f"/officers/{uuid.uuid4()}", headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    def test_missing_actor(self, client):
        resp = client.post("/officers", json=_officer_json())
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthenticated"

    def test_local_actor_needs_local_code(self, client):
        headers = {"X-Actor-Id": "x", "X-Actor-Role": "local", "X-District-Code": "D01"}
        resp = client.get("/officers", headers=headers)
        assert resp.status_code == 401

    def test_out_of_scope_intake(self, client, local_headers):
        resp = client.post("/officers", json=_officer_json(local="L002"), headers=local_headers)
        assert resp.status_code == 403
        assert resp.json()["code"] == "authorization_error"

    def test_out_of_scope_read(self, client, auth_headers, local_headers):
        created = _create(client, auth_headers, local="L002")
        resp = client.get(f"/officers/{created['id']}", headers=local_headers)
        assert resp.status_code == 403

    def test_invalid_payload(self, client, auth_headers):
        resp = client.post(
            "/officers", json=_officer_json(last_name=""), headers=auth_headers
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    def test_list_is_pinned_for_local_actor(self, client, auth_headers, local_headers):
        _create(client, auth_headers, local="L001")
        _create(client, auth_headers, local="L002")
        resp = client.get("/officers", headers=local_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 1
        assert data["items"][0]["local_code"] == "L001"

    def test_list_by_status(self, client, auth_headers):
        _create(client, auth_headers)
        resp = client.get(
            "/officers", params={"status": "removed"}, headers=auth_headers
        )
        assert resp.status_code == 200
        assert resp.json()["count"] == 0

    def test_registry_search(self, client, auth_headers):
        created = _create(client, auth_headers, registry_number="REG-99")
        _create(client, auth_headers, registry_number="REG-100")
        resp = client.get(
            "/officers/search/registry-number",
            params={"registry_number": "REG-99", "district_code": "D01"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert [o["id"] for o in resp.json()] == [created["id"]]

    def test_registry_search_requires_district(self, client, auth_headers):
        resp = client.get(
            "/officers/search/registry-number",
            params={"registry_number": "REG-99"},
            headers=auth_headers,
        )
        assert resp.status_code == 422

    def test_update_birthdate(self, client, auth_headers):
        created = _create(client, auth_headers)
        resp = client.put(
            f"/officers/{created['id']}/birthdate",
            json={"birthdate": "2015-03-03"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["birthdate"] == "2015-03-03"
        assert resp.json()["classification_auto"] == "child"

    def test_merge(self, client, auth_headers):
        primary = _create(client, auth_headers)
        duplicate = _create(client, auth_headers)
        resp = client.post(
            f"/officers/{primary['id']}/merge",
            json={"duplicate_ids": [duplicate["id"]]},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json() == {"primary_id": primary["id"], "merged_count": 1}
        assert client.get(f"/officers/{duplicate['id']}", headers=auth_headers).status_code == 404
        assert client.get("/headcount/D01/L001", headers=auth_headers).json()["total_count"] == 1

    def test_assign_department(self, client, auth_headers):
        created = _create(client, auth_headers)
        resp = client.post(
            f"/officers/{created['id']}/departments",
            json={"department": "Usher", "oath_date": "2023-04-02"},
            headers=auth_headers,
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["department"] == "Usher"
        assert resp.json()["is_active"] is True
        officer = client.get(f"/officers/{created['id']}", headers=auth_headers).json()
        assert sorted(d["department"] for d in officer["departments"]) == ["Choir", "Usher"]
        headcount = client.get("/headcount/D01/L001", headers=auth_headers).json()
        assert headcount["total_count"] == 1

    def test_assign_department_twice(self, client, auth_headers):
        created = _create(client, auth_headers)
        resp = client.post(
            f"/officers/{created['id']}/departments",
            json={"department": "Choir", "duty": "Tenor", "oath_date": "2023-04-02"},
            headers=auth_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "consistency_violation"

    def test_versioned_prefix(self, client, auth_headers):
        created = _create(client, auth_headers)
        resp = client.get(f"/api/v1/officers/{created['id']}", headers=auth_headers)
        assert resp.status_code == 200
