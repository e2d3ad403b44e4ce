from datetime import date

from app.services.common import week_bucket


def _intake(client, headers, local="L001"):
    resp = client.post(
        "/officers",
        json={
            "district_code": "D01",
            "local_code": local,
            "last_name": "Santos",
            "first_name": "Maria",
            "department": {"department": "Choir", "oath_date": "2019-04-01"},
        },
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _transfer_in_json(**overrides):
    data = {
        "last_name": "Dela Cruz",
        "first_name": "Juan",
        "birthdate": "1988-02-14",
        "from_district": "Other District",
        "from_local": "Other Local",
        "to_district_code": "D01",
        "to_local_code": "L003",
        "department": "Usher",
        "oath_date": "2024-01-10",
        "transfer_date": "2024-03-05",
    }
    data.update(overrides)
    return data


def _transfer_out(client, headers, officer_id, transfer_date="2024-03-01"):
    return client.post(
        "/transfers/out",
        json={
            "officer_id": officer_id,
            "to_district": "D02",
            "to_local": "L777",
            "transfer_date": transfer_date,
        },
        headers=headers,
    )


class TestTransferEndpoints:
    def test_transfer_in(self, client, auth_headers):
        for _ in range(4):
            _intake(client, auth_headers, local="L003")
        resp = client.post("/transfers/in", json=_transfer_in_json(), headers=auth_headers)
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["headcount"] == 5
        assert data["transfer"]["direction"] == "in"
        assert data["transfer"]["week"] == 10
        officer = client.get(f"/officers/{data['officer_id']}", headers=auth_headers).json()
        assert [d["department"] for d in officer["departments"]] == ["Usher"]

    def test_transfer_in_oath_after_transfer(self, client, auth_headers):
        resp = client.post(
            "/transfers/in",
            json=_transfer_in_json(oath_date="2024-04-01"),
            headers=auth_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    def test_transfer_in_missing_field(self, client, auth_headers):
        payload = _transfer_in_json()
        del payload["oath_date"]
        resp = client.post("/transfers/in", json=payload, headers=auth_headers)
        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    def test_transfer_out(self, client, auth_headers):
        officer = _intake(client, auth_headers)
        resp = _transfer_out(client, auth_headers, officer["id"])
        assert resp.status_code == 201
        data = resp.json()
        assert data["direction"] == "out"
        assert data["from_local"] == "L001"
        assert data["week"] == 9
        fetched = client.get(f"/officers/{officer['id']}", headers=auth_headers).json()
        assert fetched["status"] == "transferred_out"
        assert client.get("/headcount/D01/L001", headers=auth_headers).json()["total_count"] == 0

    def test_double_transfer_out(self, client, auth_headers):
        officer = _intake(client, auth_headers)
        _transfer_out(client, auth_headers, officer["id"])
        resp = _transfer_out(client, auth_headers, officer["id"])
        assert resp.status_code == 409
        assert resp.json()["code"] == "consistency_violation"

    def test_transfer_out_out_of_scope(self, client, auth_headers, local_headers):
        officer = _intake(client, auth_headers, local="L002")
        resp = _transfer_out(client, local_headers, officer["id"])
        assert resp.status_code == 403

    def test_list_transfers(self, client, auth_headers):
        officer = _intake(client, auth_headers)
        _transfer_out(client, auth_headers, officer["id"])
        resp = client.get(
            "/transfers",
            params={"district_code": "D01", "direction": "out"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["count"] == 1

    def test_list_requires_district_for_admin(self, client, auth_headers):
        resp = client.get("/transfers", headers=auth_headers)
        assert resp.status_code == 422

    def test_weekly_summary(self, client, auth_headers):
        officer = _intake(client, auth_headers)
        _transfer_out(client, auth_headers, officer["id"], transfer_date="2024-03-05")
        client.post(
            "/transfers/in",
            json=_transfer_in_json(to_local_code="L002"),
            headers=auth_headers,
        )
        resp = client.get(
            "/transfers/weekly-summary",
            params={"district_code": "D01", "week": 10, "year": 2024},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json() == [
            {"local_code": "L001", "transfers_in": 0, "transfers_out": 1},
            {"local_code": "L002", "transfers_in": 1, "transfers_out": 0},
        ]

    def test_weekly_summary_defaults_to_current_week(self, client, auth_headers):
        today = date.today()
        officer = _intake(client, auth_headers)
        _transfer_out(client, auth_headers, officer["id"], transfer_date=today.isoformat())
        week, year = week_bucket(today)
        resp = client.get(
            "/transfers/weekly-summary",
            params={"district_code": "D01"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()[0]["transfers_out"] == 1
        explicit = client.get(
            "/transfers/weekly-summary",
            params={"district_code": "D01", "week": week, "year": year},
            headers=auth_headers,
        )
        assert explicit.json() == resp.json()

    def test_weekly_summary_local_actor_sees_own_row(
        self, client, auth_headers, local_headers
    ):
        first = _intake(client, auth_headers, local="L001")
        second = _intake(client, auth_headers, local="L002")
        _transfer_out(client, auth_headers, first["id"], transfer_date="2024-03-05")
        _transfer_out(client, auth_headers, second["id"], transfer_date="2024-03-05")
        resp = client.get(
            "/transfers/weekly-summary",
            params={"week": 10, "year": 2024},
            headers=local_headers,
        )
        assert [row["local_code"] for row in resp.json()] == ["L001"]

    def test_out_history_and_clearance(self, client, auth_headers, local_headers):
        officer = _intake(client, auth_headers)
        _transfer_out(client, auth_headers, officer["id"])
        resp = client.get("/transfers/out-history", headers=local_headers)
        assert resp.status_code == 200
        assert resp.json()["count"] == 1

        cleared = client.post(
            "/history-clearances", json={"view": "transfer_out"}, headers=local_headers
        )
        assert cleared.status_code == 201
        assert cleared.json()["local_code"] == "L001"

        resp = client.get("/transfers/out-history", headers=local_headers)
        assert resp.json()["count"] == 0

    def test_versioned_prefix(self, client, auth_headers):
        resp = client.post(
            "/api/v1/transfers/in", json=_transfer_in_json(), headers=auth_headers
        )
        assert resp.status_code == 201
