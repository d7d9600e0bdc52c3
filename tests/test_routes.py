from meetinsight.services.gateway import GatewayError


def test_workspace_requires_login(app):
    resp = app.test_client().get("/workspace")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Login required"}


def test_index_redirects_anonymous_to_login(app):
    resp = app.test_client().get("/")
    assert resp.status_code == 302
    assert "/auth/login" in resp.headers["Location"]


def test_signup_then_login(app):
    c = app.test_client()
    resp = c.post("/auth/signup", data={
        "email": "New@Example.com", "display_name": "New",
        "password": "long-enough-pw", "confirm": "long-enough-pw",
    })
    assert resp.status_code == 302
    resp = c.post("/auth/signup", data={
        "email": "new@example.com", "password": "long-enough-pw", "confirm": "long-enough-pw",
    })
    assert resp.status_code == 200
    assert b"This email is already registered" in resp.data

    resp = c.post("/auth/login", data={"email": "new@example.com", "password": "wrong-password"})
    assert resp.status_code == 200
    assert b"Invalid email or password" in resp.data
    resp = c.post("/auth/login", data={"email": "new@example.com", "password": "long-enough-pw"})
    assert resp.status_code == 302
    assert c.get("/workspace").status_code == 200


def test_full_workflow_over_http(client, workspace, gateway):
    resp = client.post("/workspace/records", json={"title": "Weekly sync"})
    assert resp.status_code == 201
    record_id = resp.get_json()["record"]["id"]

    client.patch("/workspace/transcript", json={"value": "hello world"})
    client.patch("/workspace/metadata", json={"field": "speakers", "value": "Ann"})

    resp = client.post("/workspace/step", json={"step": 2})
    assert resp.status_code == 409

    gateway.responses.append("Hello, world.")
    resp = client.post("/workspace/correction")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["step"] == 2
    assert body["current_transcript"]["corrected_transcript"] == "Hello, world."
    # the correction reads the edit buffers, not the not-yet-saved row
    assert gateway.calls[0] == ("correct", "hello world", {
        "subject": "", "keywords": "", "speakers": "Ann", "terminology": "", "length": "",
    })

    resp = client.post("/workspace/modules/a/analysis")
    assert resp.get_json()["modules"]["A"]["version_count"] == 1
    resp = client.post("/workspace/modules/A/chat", json={"text": "why?"})
    assert resp.status_code == 200
    msgs = resp.get_json()["modules"]["A"]["versions"][0]["messages"]
    assert [m["role"] for m in msgs] == ["model", "user", "model"]

    resp = client.get("/workspace/records")
    assert resp.get_json()["active_record_id"] == record_id


def test_gateway_failure_maps_to_502(client, workspace, gateway):
    client.post("/workspace/records", json={})
    client.patch("/workspace/transcript", json={"value": "hello"})
    gateway.responses.append(GatewayError("Rate limit exceeded", status=429))
    resp = client.post("/workspace/correction")
    assert resp.status_code == 502
    assert resp.get_json() == {"error": "Correction failed: Rate limit exceeded"}


def test_validation_errors(client, workspace):
    assert client.post("/workspace/correction").status_code == 400
    client.post("/workspace/records", json={})
    assert client.post("/workspace/modules/Z/analysis").status_code == 400
    resp = client.post("/workspace/transcript-versions/active", json={"version": "x"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "'version' must be an integer"
    assert client.post("/workspace/records/9999/select").status_code == 404


def test_records_are_private(app, client, workspace, other_user):
    resp = client.post("/workspace/records", json={"title": "mine"})
    record_id = resp.get_json()["record"]["id"]

    other = app.test_client()
    other.post("/auth/login", data={"email": "intruder@example.com", "password": "correct-horse-battery"})
    assert other.get("/workspace/records").get_json()["records"] == []
    assert other.post(f"/workspace/records/{record_id}/select").status_code == 404
    assert other.delete(f"/workspace/records/{record_id}").status_code == 404
