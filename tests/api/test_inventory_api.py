"""
Laundry, write-off and standard stock endpoints
"""
from hotelops.models.ontology import Room


class TestLaundryApi:

    def test_housekeeping_sends_and_receives(self, client, cleaner_headers, towel_item):
        sent = client.post("/inventory/laundry/send", json={
            "items": [{"item_id": towel_item.id, "quantity": 6}],
            "facility_name": "Tuan Chau",
        }, headers=cleaner_headers)
        assert sent.status_code == 200
        assert sent.json()[0]["type"] == "LAUNDRY_SEND"

        received = client.post("/inventory/laundry/receive", json={
            "items": [{"item_id": towel_item.id, "quantity": 6, "damaged": 1}],
        }, headers=cleaner_headers)
        assert received.status_code == 200
        assert received.json()[0]["type"] == "LAUNDRY_RECEIVE"

        item = client.get(f"/inventory/items/{towel_item.id}", headers=cleaner_headers).json()
        assert (item["stock"], item["laundry_stock"], item["total_assets"]) == (19, 0, 19)

    def test_empty_ticket_is_422(self, client, cleaner_headers):
        response = client.post("/inventory/laundry/send", json={"items": []}, headers=cleaner_headers)
        assert response.status_code == 422

    def test_unknown_item_is_404(self, client, cleaner_headers):
        response = client.post("/inventory/laundry/receive", json={
            "items": [{"item_id": 999, "quantity": 1}],
        }, headers=cleaner_headers)
        assert response.status_code == 404


class TestLiquidateApi:

    def test_staff_cannot_liquidate(self, client, staff_headers, towel_item):
        response = client.post("/inventory/liquidate", json={"item_id": towel_item.id, "quantity": 1},
                               headers=staff_headers)
        assert response.status_code == 403

    def test_too_many_is_400(self, client, manager_headers, towel_item):
        response = client.post("/inventory/liquidate", json={"item_id": towel_item.id, "quantity": 21},
                               headers=manager_headers)
        assert response.status_code == 400
        assert "Not enough stock" in response.json()["detail"]


class TestRecipesApi:

    def test_recipe_drives_standard_stock(self, client, db_session, manager_headers, facility, towel_item):
        db_session.add(Room(facility_id=facility.id, name="301", room_type="1GM8"))
        db_session.commit()

        saved = client.put("/inventory/recipes", json={
            "room_type": "1GM8",
            "description": "One king bed",
            "items": [{"itemId": towel_item.id, "quantity": 25}],
        }, headers=manager_headers)
        assert saved.status_code == 200
        assert saved.json()["items"] == [{"item_id": towel_item.id, "quantity": 25}]

        standard = client.get("/inventory/standard", headers=manager_headers).json()
        towel = next(line for line in standard if line["item_id"] == towel_item.id)
        assert (towel["required"], towel["actual"], towel["variance"]) == (25, 20, -5)
        assert towel["status"] == "Short"

        assert client.delete("/inventory/recipes/1GM8", headers=manager_headers).status_code == 200
        assert client.delete("/inventory/recipes/1GM8", headers=manager_headers).status_code == 404
