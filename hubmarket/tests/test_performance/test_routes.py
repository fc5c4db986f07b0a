"""Tests for performance entry routes."""

from hubmarket.tests.factories import HUB_USER, OTHER_PUB_USER, PUB_USER, as_user

def body_for(order, **overrides):
    data = {
        "orderId": order.id,
        "campaignId": order.campaign_id,
        "publicationId": order.publication_id,
        "itemPath": "web/leaderboard",
        "itemName": "leaderboard",
        "channel": "website",
        "dateStart": "2024-03-01T00:00:00Z",
        "metrics": {"impressions": 8000, "clicks": 12},
    }
    data.update(overrides)
    return data

class TestEntryRoutes:
    """Test cases for /performance-entries."""

    def test_create_and_fetch(self, client, make_order):
        order = make_order()

        created = client.post("/performance-entries", json=body_for(order), headers=as_user(PUB_USER))

        assert created.status_code == 201
        body = created.json()
        assert body["ctr"] == 0.15
        assert body["metrics"]["impressions"] == 8000
        assert body["source"] == "manual"
        assert body["enteredBy"] == PUB_USER

        fetched = client.get(f"/performance-entries/{body['id']}", headers=as_user(HUB_USER))
        assert fetched.status_code == 200
        assert fetched.json()["itemPath"] == "web/leaderboard"

    def test_missing_required_field_is_400(self, client, make_order):
        data = body_for(make_order())
        del data["itemName"]

        response = client.post("/performance-entries", json=data, headers=as_user(PUB_USER))

        assert response.status_code == 400
        fields = [error["field"] for error in response.json()["details"]["errors"]]
        assert any("itemName" in field for field in fields)

    def test_other_publication_cannot_create(self, client, make_order):
        response = client.post("/performance-entries", json=body_for(make_order()), headers=as_user(OTHER_PUB_USER))
        assert response.status_code == 403

    def test_bulk_create(self, client, make_order):
        order = make_order()

        response = client.post(
            "/performance-entries/bulk",
            json={"entries": [body_for(order), body_for(order, channel="print", itemPath="print/a")]},
            headers=as_user(PUB_USER),
        )

        assert response.status_code == 201
        assert response.json()["created"] == 2
        assert {e["source"] for e in response.json()["entries"]} == {"import"}

    def test_bulk_create_reports_errors_by_index(self, client, make_order):
        order = make_order()

        response = client.post(
            "/performance-entries/bulk",
            json={"entries": [body_for(order), body_for(order, metrics={"impressions": -5})]},
            headers=as_user(PUB_USER),
        )

        assert response.status_code == 400
        assert [e["index"] for e in response.json()["details"]["errors"]] == [1]
        listed = client.get(f"/performance-entries?orderId={order.id}", headers=as_user(PUB_USER))
        assert listed.json() == []

    def test_null_item_path_on_update_is_400(self, client, make_order, make_entry):
        entry = make_entry(make_order(), channel="website", item_path="web/a")

        response = client.put(
            f"/performance-entries/{entry.id}", json={"itemPath": None}, headers=as_user(PUB_USER)
        )

        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["field"] == "itemPath"
        fetched = client.get(f"/performance-entries/{entry.id}", headers=as_user(PUB_USER))
        assert fetched.json()["itemPath"] == "web/a"

    def test_update_validation_and_delete(self, client, make_order, make_entry):
        order = make_order()
        entry = make_entry(order, channel="website", item_path="web/a", impressions=1000, clicks=1)

        updated = client.put(
            f"/performance-entries/{entry.id}", json={"metrics": {"clicks": 20}}, headers=as_user(PUB_USER)
        )
        assert updated.json()["ctr"] == 2.0

        denied = client.put(
            f"/performance-entries/{entry.id}/validation",
            json={"validationStatus": "bad_pixel"},
            headers=as_user(PUB_USER),
        )
        assert denied.status_code == 403

        flagged = client.put(
            f"/performance-entries/{entry.id}/validation",
            json={"validationStatus": "bad_pixel"},
            headers=as_user(HUB_USER),
        )
        assert flagged.json()["validationStatus"] == "bad_pixel"

        summary = client.get(f"/performance-entries/order/{order.id}", headers=as_user(PUB_USER)).json()
        assert summary["summary"]["totalEntries"] == 1
        assert summary["summary"]["totalImpressions"] == 0

        assert client.delete(f"/performance-entries/{entry.id}", headers=as_user(PUB_USER)).json() == {"success": True}
        assert client.get(f"/performance-entries/{entry.id}", headers=as_user(PUB_USER)).status_code == 404
