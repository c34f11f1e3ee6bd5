"""Tests for the versioned resource endpoints."""

from fastapi.testclient import TestClient

API = "/api/v2"


def _create_insured(test_client: TestClient, name: str = "Muppy") -> dict:
    response = test_client.post(f"{API}/insured/new", json={"name": name})
    assert response.status_code == 201
    return response.json()["data"]


class TestResourceEndpoints:
    """Test suite for the resource API.

    Covers the request/response envelope, resource synonyms and the mapping
    of errors to status codes.
    """

    def test_create_insured(self, test_client: TestClient) -> None:
        response = test_client.post(f"{API}/insureds/new", json={"name": "Muppy"})

        assert response.status_code == 201
        body = response.json()
        assert body["status"] is True
        assert body["meta"]["api_version"] == "v2"
        assert body["data"]["name"] == "Muppy"
        assert body["data"]["policyNumber"] == "1000"
        assert "recordDateTime" in body["data"]

    def test_unknown_resource_is_bad_request(self, test_client: TestClient) -> None:
        response = test_client.get(f"{API}/policies")

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "UnknownResourceError"
        assert "No endpoint for: policies" in detail["message"]

    def test_duplicate_address_is_conflict(self, test_client: TestClient) -> None:
        insured = _create_insured(test_client)
        payload = {"address": "911 Reno Street", "rootId": insured["id"]}

        first = test_client.post(f"{API}/address/new", json=payload)
        second = test_client.post(f"{API}/insured_addresses/new", json=payload)

        assert first.status_code == 201
        assert first.json()["data"]["address"] == "911 Reno Street"
        assert second.status_code == 409
        assert second.json()["detail"]["error"] == "RecordAlreadyExistsError"

    def test_employee_update_and_point_in_time_reads(self, test_client: TestClient, clock) -> None:
        insured = _create_insured(test_client)
        clock.advance(10)
        employee = test_client.post(
            f"{API}/employee/new",
            json={
                "name": "X",
                "startDate": "1974-07-24",
                "endDate": "1994-01-14",
                "insuredId": int(insured["id"]),
            },
        ).json()["data"]
        before_update = clock.advance(10)
        clock.advance(10)

        updated = test_client.put(
            f"{API}/employees/update",
            json={"insuredId": insured["id"], "employeeId": employee["id"], "endDate": "1999-01-14"},
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["endDate"] == "1999-01-14"

        old = test_client.get(f"{API}/employee/getbytimestamp/{insured['id']}/{before_update}")
        new = test_client.get(f"{API}/employee/getbytimestamp/{insured['id']}/{clock.epoch}")
        assert [e["endDate"] for e in old.json()["data"]["items"]] == ["1994-01-14"]
        assert [e["endDate"] for e in new.json()["data"]["items"]] == ["1999-01-14"]

        history = test_client.get(f"{API}/employee/history/{employee['id']}")
        assert history.json()["data"]["total"] == 2

    def test_get_insured_includes_children(self, test_client: TestClient, clock) -> None:
        insured = _create_insured(test_client)
        test_client.post(f"{API}/address/new", json={"address": "A", "insuredId": insured["id"]})

        response = test_client.get(f"{API}/insured/id/{insured['id']}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["employees"] == []
        assert [a["address"] for a in data["addresses"]] == ["A"]

    def test_get_by_date_covers_the_whole_day(self, test_client: TestClient, clock) -> None:
        insured = _create_insured(test_client)
        clock.advance(3600)
        test_client.post(f"{API}/address/new", json={"address": "A", "insuredId": insured["id"]})

        same_day = test_client.get(f"{API}/address/getbydate/{insured['id']}/2024-01-01")
        day_before = test_client.get(f"{API}/insured/getbydate/{insured['id']}/2023-12-31")

        assert [a["address"] for a in same_day.json()["data"]["items"]] == ["A"]
        assert day_before.status_code == 404

    def test_malformed_instants_are_bad_request(self, test_client: TestClient) -> None:
        insured = _create_insured(test_client)

        by_date = test_client.get(f"{API}/insured/getbydate/{insured['id']}/01-01-2024")
        by_timestamp = test_client.get(f"{API}/insured/getbytimestamp/{insured['id']}/soon")
        by_id = test_client.get(f"{API}/insured/id/abc")

        assert by_date.status_code == 400
        assert by_timestamp.status_code == 400
        assert by_id.status_code == 400

    def test_out_of_range_instants_and_ids_are_bad_request(self, test_client: TestClient) -> None:
        insured = _create_insured(test_client)
        too_large = "99999999999999999999"

        responses = [
            test_client.get(f"{API}/insured/getbydate/{insured['id']}/9999-12-31"),
            test_client.get(f"{API}/insured/getbytimestamp/{insured['id']}/{too_large}"),
            test_client.get(f"{API}/employee/id/{too_large}"),
            test_client.get(f"{API}/insured/history/0"),
            test_client.post(f"{API}/address/new", json={"address": "A", "insuredId": too_large}),
        ]

        assert [r.status_code for r in responses] == [400] * len(responses)
        assert all(r.json()["detail"]["error"] == "InvalidInputError" for r in responses)

    def test_update_errors(self, test_client: TestClient, clock) -> None:
        insured = _create_insured(test_client)

        immutable = test_client.put(f"{API}/insured/update", json={"id": insured["id"], "name": "Other"})
        missing = test_client.put(f"{API}/address/update", json={"insuredId": insured["id"], "address": "A"})
        test_client.post(f"{API}/address/new", json={"address": "A", "insuredId": insured["id"]})
        clock.advance()
        no_op = test_client.put(f"{API}/address/update", json={"insuredId": insured["id"], "address": "A"})

        assert immutable.status_code == 409
        assert immutable.json()["detail"]["error"] == "InsuredImmutableError"
        assert missing.status_code == 404
        assert no_op.status_code == 409
        assert no_op.json()["detail"]["error"] == "NoOpUpdateError"

    def test_delete_and_list(self, test_client: TestClient) -> None:
        muppy = _create_insured(test_client, "Muppy")
        _create_insured(test_client, "Kermit")

        deleted = test_client.delete(f"{API}/insured/delete/{muppy['id']}")
        listing = test_client.get(f"{API}/insured")
        again = test_client.delete(f"{API}/insured/delete/{muppy['id']}")

        assert deleted.status_code == 200
        assert deleted.json()["data"]["name"] == "Muppy"
        assert [i["name"] for i in listing.json()["data"]["items"]] == ["Kermit"]
        assert again.status_code == 404

    def test_correlation_id_is_echoed(self, test_client: TestClient) -> None:
        response = test_client.get(f"{API}/insured", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"
        assert response.json()["meta"]["request_id"] == "abc-123"


class TestServiceEndpoints:
    def test_root(self, test_client: TestClient) -> None:
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "Server is running"

    def test_health(self, test_client: TestClient) -> None:
        response = test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "healthy"
