from datetime import date, timedelta

DAY = "2030-01-07"


def _work_center(client, **overrides):
    payload = {"name": "Druck-Station 1", "department": "DRUCK", "concurrent_capacity": 1}
    payload.update(overrides)
    r = client.post("/api/v1/workcenters", json=payload)
    assert r.status_code == 201
    return r.json()


def _submitted_order(client, department="DRUCK"):
    r = client.post("/api/v1/orders", json={"title": "Vereinsshirts", "customer": "TSV Musterstadt",
                                            "department": department})
    assert r.status_code == 201
    order = r.json()
    r = client.post(f"/api/v1/orders/{order['id']}/assets",
                    json={"label": "Logo Brust", "url": "https://example.invalid/logo.pdf"})
    assert r.status_code == 201
    r = client.post(f"/api/v1/orders/{order['id']}/submit")
    assert r.status_code == 200
    return r.json()


def _slot(client, wc_id, order_id=None, start=540, length=60, day=DAY):
    return client.post("/api/v1/timeslots", json={
        "work_center_id": wc_id, "date": day, "start_min": start, "length_min": length, "order_id": order_id,
    })


def test_new_order_gets_display_number_and_cannot_be_scheduled(client):
    wc = _work_center(client)
    r = client.post("/api/v1/orders", json={"title": "Hoodies", "customer": "Kita", "department": "DRUCK"})
    assert r.status_code == 201
    order = r.json()
    assert order["workflow"] == "NEU"
    assert order["qc"] == "UNGEPRUEFT"
    assert order["display_order_number"].startswith("INT-")

    r = _slot(client, wc["id"], order["id"])
    assert r.status_code == 412
    body = r.json()
    assert body["type"] == "precondition_failed"
    assert body["details"]["rule"] == "workflow"


def test_submit_without_asset_is_412(client):
    r = client.post("/api/v1/orders", json={"title": "Caps", "customer": "Verein", "department": "STICKEREI"})
    order = r.json()
    r = client.post(f"/api/v1/orders/{order['id']}/submit")
    assert r.status_code == 412
    assert r.json()["message"] == "Required print asset missing"


def test_teamsport_size_table_flow(client):
    r = client.post("/api/v1/orders", json={"title": "Trikots", "customer": "FC", "department": "TEAMSPORT"})
    order = r.json()
    client.post(f"/api/v1/orders/{order['id']}/assets", json={"label": "Nummern", "url": "https://example.invalid/n.pdf"})
    assert client.post(f"/api/v1/orders/{order['id']}/submit").status_code == 412

    r = client.post(f"/api/v1/orders/{order['id']}/size",
                    json={"scheme": "EU", "rows": [{"size": "L", "qty": 11, "number": "7"}]})
    assert r.status_code == 200
    assert r.json()["rows"][0]["size"] == "L"
    r = client.post(f"/api/v1/orders/{order['id']}/submit")
    assert r.status_code == 200
    assert r.json()["workflow"] == "FUER_PROD"
    assert r.json()["size_table"]["scheme"] == "EU"


def test_error_mapping_for_scheduling(client):
    wc = _work_center(client)
    order = _submitted_order(client)

    r = _slot(client, wc["id"], order["id"])
    assert r.status_code == 201
    first = r.json()
    assert first["status"] == "PLANNED"
    assert first["end_min"] == 600

    r = _slot(client, wc["id"], order["id"], start=570, length=30)
    assert r.status_code == 409
    assert r.json()["type"] == "conflict"
    assert r.json()["details"]["overlapping_slot_ids"] == [first["id"]]

    r = _slot(client, wc["id"], order["id"], start=545)
    assert r.status_code == 422
    assert r.json()["type"] == "invalid_range"

    r = _slot(client, 9999, order["id"])
    assert r.status_code == 404
    assert r.json()["type"] == "not_found"

    r = client.patch(f"/api/v1/timeslots/{first['id']}", json={"start_min": 600})
    assert r.status_code == 200
    assert r.json()["start_min"] == 600

    r = client.get("/api/v1/timeslots", params={"date_from": DAY, "date_to": DAY})
    assert [s["id"] for s in r.json()] == [first["id"]]

    assert client.delete(f"/api/v1/timeslots/{first['id']}").status_code == 204
    assert client.delete(f"/api/v1/timeslots/{first['id']}").status_code == 404


def test_execution_qc_and_accounting_flow(client):
    wc = _work_center(client)
    order = _submitted_order(client)
    slot = _slot(client, wc["id"], order["id"]).json()

    r = client.post(f"/api/v1/timeslots/{slot['id']}/start")
    assert r.status_code == 200
    assert r.json()["status"] == "RUNNING"
    assert client.get(f"/api/v1/orders/{order['id']}").json()["workflow"] == "IN_PROD"

    r = client.post(f"/api/v1/timeslots/{slot['id']}/qc", json={"outcome": "OK"})
    assert r.status_code == 409
    assert r.json()["type"] == "invalid_transition"

    assert client.post(f"/api/v1/timeslots/{slot['id']}/start").status_code == 409
    assert client.post(f"/api/v1/timeslots/{slot['id']}/pause").json()["status"] == "PAUSED"
    assert client.post(f"/api/v1/timeslots/{slot['id']}/stop").json()["status"] == "DONE"

    r = client.post(f"/api/v1/timeslots/{slot['id']}/qc", json={"outcome": "OK", "note": "passt"})
    assert r.status_code == 200
    assert r.json()["qc"] == "IO"

    r = client.post(f"/api/v1/timeslots/{slot['id']}/qc", json={"outcome": "MAYBE"})
    assert r.status_code == 422

    order_now = client.get(f"/api/v1/orders/{order['id']}").json()
    assert order_now["workflow"] == "FERTIG"
    assert order_now["qc"] == "IO"

    r = client.post(f"/api/v1/orders/{order['id']}/deliver", json={"qty": 25, "note": "Abholung"})
    assert r.status_code == 200
    assert r.json()["workflow"] == "ZUR_ABRECHNUNG"

    accounting = client.get("/api/v1/accounting/orders").json()
    assert [o["id"] for o in accounting] == [order["id"]]

    r = client.post(f"/api/v1/orders/{order['id']}/settle", json={"actor_id": "buchhaltung"})
    assert r.status_code == 200
    assert r.json()["workflow"] == "ABGERECHNET"
    assert client.get("/api/v1/accounting/orders").json() == []


def test_qc_fail_shortcut(client):
    wc = _work_center(client)
    order = _submitted_order(client)
    slot = _slot(client, wc["id"], order["id"]).json()
    client.post(f"/api/v1/timeslots/{slot['id']}/start")
    client.post(f"/api/v1/timeslots/{slot['id']}/stop")
    r = client.post(f"/api/v1/timeslots/{slot['id']}/qc-fail", json={"note": "Farbe falsch"})
    assert r.status_code == 200
    assert r.json()["qc"] == "NIO"
    assert r.json()["qc_note"] == "Farbe falsch"


def test_missing_parts_flow(client):
    wc = _work_center(client)
    order = _submitted_order(client)
    slot = _slot(client, wc["id"], order["id"]).json()

    r = client.post(f"/api/v1/timeslots/{slot['id']}/missing-parts",
                    json={"note": "Blanks fehlen", "update_order_workflow": True, "actor_id": "werk-1"})
    assert r.status_code == 200
    assert r.json()["missing_parts_note"] == "Blanks fehlen"
    assert client.get(f"/api/v1/orders/{order['id']}").json()["workflow"] == "WARTET_FEHLTEILE"

    pending = client.get("/api/v1/timeslots/missing-parts").json()
    assert [s["id"] for s in pending] == [slot["id"]]

    r = client.post(f"/api/v1/orders/{order['id']}/release-from-missing-parts", json={"actor_id": "lager"})
    assert r.status_code == 200
    assert r.json()["workflow"] == "FUER_PROD"
    assert client.get("/api/v1/timeslots/missing-parts").json() == []


def test_batch_endpoint_reports_failing_member(client):
    wc = _work_center(client)
    order = _submitted_order(client)
    r = client.post("/api/v1/timeslots/batch", json={"operations": [
        {"op": "create", "work_center_id": wc["id"], "date": DAY, "start_min": 540, "length_min": 60,
         "order_id": order["id"]},
        {"op": "create", "work_center_id": wc["id"], "date": DAY, "start_min": 600, "length_min": 60,
         "order_id": order["id"]},
    ]})
    assert r.status_code == 200
    assert len(r.json()["created"]) == 2

    r = client.post("/api/v1/timeslots/batch", json={"operations": [
        {"op": "delete", "slot_id": r.json()["created"][0]["id"]},
        {"op": "create", "work_center_id": wc["id"], "date": DAY, "start_min": 600, "length_min": 30},
    ]})
    assert r.status_code == 409
    assert r.json()["details"]["index"] == 1
    assert len(client.get("/api/v1/timeslots", params={"date_from": DAY, "date_to": DAY}).json()) == 2


def test_deleting_referenced_order_and_busy_work_center_is_refused(client):
    wc = _work_center(client)
    order = _submitted_order(client)
    upcoming = (date.today() + timedelta(days=3)).isoformat()
    slot = _slot(client, wc["id"], order["id"], day=upcoming).json()

    assert client.delete(f"/api/v1/orders/{order['id']}").status_code == 412
    assert client.delete(f"/api/v1/workcenters/{wc['id']}").status_code == 412

    client.delete(f"/api/v1/timeslots/{slot['id']}")
    assert client.delete(f"/api/v1/orders/{order['id']}").status_code == 204
    assert client.get(f"/api/v1/orders/{order['id']}").status_code == 404
    assert client.delete(f"/api/v1/workcenters/{wc['id']}").status_code == 204


def test_work_center_update_and_calendar(client):
    wc = _work_center(client, capacity_min=600)
    order = _submitted_order(client)
    _slot(client, wc["id"], order["id"], start=540, length=120)
    client.post("/api/v1/timeslots", json={"work_center_id": wc["id"], "date": DAY, "start_min": 420,
                                           "length_min": 60, "note": "Wartung"})

    r = client.patch(f"/api/v1/workcenters/{wc['id']}", json={"concurrent_capacity": 3})
    assert r.status_code == 200
    assert r.json()["concurrent_capacity"] == 3
    assert client.patch(f"/api/v1/workcenters/{wc['id']}", json={"concurrent_capacity": 0}).status_code == 422

    r = client.get("/api/v1/calendar", params={"date_from": DAY, "date_to": "2030-01-08"})
    assert r.status_code == 200
    days = r.json()
    assert [d["date"] for d in days] == [DAY, "2030-01-08"]
    assert days[0]["used_minutes"] == 180
    assert days[0]["utilization"] == 0.3
    assert days[0]["peak_concurrency"] == 1
    assert days[1]["used_minutes"] == 0

    r = client.get("/api/v1/calendar", params={"date_from": "2030-01-08", "date_to": DAY})
    assert r.status_code == 422


def test_lowering_capacity_below_booked_overlap_is_refused(client):
    wc = _work_center(client, concurrent_capacity=2)
    order = _submitted_order(client)
    first = _slot(client, wc["id"], order["id"], start=540, length=60).json()
    assert _slot(client, wc["id"], order["id"], start=570, length=60).status_code == 201
    # overlaps in the past do not hold the capacity up
    assert _slot(client, wc["id"], order["id"], start=540, day="2020-01-06").status_code == 201
    assert _slot(client, wc["id"], order["id"], start=540, day="2020-01-06").status_code == 201

    r = client.patch(f"/api/v1/workcenters/{wc['id']}", json={"concurrent_capacity": 1})
    assert r.status_code == 409
    body = r.json()
    assert body["type"] == "conflict"
    assert body["details"]["date"] == DAY
    assert body["details"]["peak_concurrency"] == 2
    assert client.get(f"/api/v1/workcenters/{wc['id']}").json()["concurrent_capacity"] == 2

    # renaming alone is not affected
    r = client.patch(f"/api/v1/workcenters/{wc['id']}", json={"name": "Druck-Station 1a"})
    assert r.status_code == 200

    assert client.patch(f"/api/v1/timeslots/{first['id']}", json={"start_min": 660}).status_code == 200
    r = client.patch(f"/api/v1/workcenters/{wc['id']}", json={"concurrent_capacity": 1})
    assert r.status_code == 200
    assert r.json()["concurrent_capacity"] == 1


def test_order_time_slots_filter_by_status(client):
    wc = _work_center(client, concurrent_capacity=2)
    order = _submitted_order(client)
    first = _slot(client, wc["id"], order["id"], start=540).json()
    second = _slot(client, wc["id"], order["id"], start=660).json()
    assert client.post(f"/api/v1/timeslots/{first['id']}/start").status_code == 200

    r = client.get(f"/api/v1/orders/{order['id']}/timeslots")
    assert [s["id"] for s in r.json()] == [first["id"], second["id"]]

    r = client.get(f"/api/v1/orders/{order['id']}/timeslots", params={"status": "RUNNING"})
    assert r.status_code == 200
    assert [s["id"] for s in r.json()] == [first["id"]]
    r = client.get(f"/api/v1/orders/{order['id']}/timeslots", params={"status": "PLANNED"})
    assert [s["id"] for s in r.json()] == [second["id"]]
    assert client.get(f"/api/v1/orders/{order['id']}/timeslots", params={"status": "BOGUS"}).status_code == 422
