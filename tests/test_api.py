"""
Tests for the application shell (health, auth, metrics) and the
stateless roll endpoints.
"""


# ============================================================================
# HEALTH & AUTH
# ============================================================================

def test_health(test_client):
    resp = test_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "X-Request-ID" in resp.headers


def test_api_health_is_public(test_client):
    """Detailed health reports DB and realtime state without an API key."""
    resp = test_client.get("/api/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["database"] == "ok"
    assert body["environment"] == "ok"
    assert "sessions" in body["realtime"]


def test_missing_api_key_rejected(test_client):
    resp = test_client.post("/api/rolls/dice", json={"formula": "1d6"})
    assert resp.status_code == 403
    assert resp.json()["error"] == "Invalid or missing X-API-Key"
    assert "request_id" in resp.json()


def test_wrong_api_key_rejected(test_client):
    resp = test_client.get("/api/metrics", headers={"X-API-Key": "nope"})
    assert resp.status_code == 403


def test_root_lists_entry_points(test_client):
    body = test_client.get("/").json()
    assert body["websocket"] == "/game-ws"
    assert body["docs"] == "/docs"


def test_openapi_declares_api_key(test_client):
    schema = test_client.get("/openapi.json").json()
    assert schema["components"]["securitySchemes"]["ApiKeyAuth"]["name"] == "X-API-Key"


def test_metrics_count_requests(test_client, auth_headers):
    test_client.get("/health")
    resp = test_client.get("/api/metrics", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["requests_total"] >= 1
    assert body["requests_by_path"]["/health"] >= 1
    assert "200" in body["responses_by_status"]


# ============================================================================
# DICE
# ============================================================================

def test_roll_dice_endpoint(test_client, auth_headers):
    resp = test_client.post("/api/rolls/dice", headers=auth_headers, json={"formula": "3d6+2"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["formula"] == "3d6+2"
    assert len(body["rolls"]) == 3
    assert body["total"] == sum(body["rolls"]) + 2
    assert 5 <= body["total"] <= 20


def test_roll_dice_bad_formula(test_client, auth_headers):
    resp = test_client.post("/api/rolls/dice", headers=auth_headers, json={"formula": "fireball"})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_roll_dice_out_of_bounds(test_client, auth_headers):
    resp = test_client.post("/api/rolls/dice", headers=auth_headers, json={"formula": "101d6"})
    assert resp.status_code == 400
    assert "Number of dice" in resp.json()["error"]


def test_roll_dice_empty_formula(test_client, auth_headers):
    resp = test_client.post("/api/rolls/dice", headers=auth_headers, json={"formula": ""})
    assert resp.status_code == 422


# ============================================================================
# SKILL & SANITY CHECKS
# ============================================================================

def test_skill_check_with_physical_roll(test_client, auth_headers):
    """A player may type in the d100 they rolled at the table."""
    resp = test_client.post(
        "/api/rolls/skill",
        headers=auth_headers,
        json={"skill_name": "Spot Hidden", "skill_value": 60, "roll": 12},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["roll"] == 12
    assert body["outcome"] == "extreme_success"
    assert body["skill_name"] == "Spot Hidden"


def test_skill_check_rolls_d100(test_client, auth_headers):
    resp = test_client.post("/api/rolls/skill", headers=auth_headers, json={"skill_value": 50})
    body = resp.json()
    assert 1 <= body["roll"] <= 100
    assert body["outcome"] in {"extreme_success", "hard_success", "success", "failure"}


def test_skill_check_rejects_impossible_roll(test_client, auth_headers):
    resp = test_client.post("/api/rolls/skill", headers=auth_headers, json={"skill_value": 50, "roll": 101})
    assert resp.status_code == 422


def test_sanity_check(test_client, auth_headers):
    resp = test_client.post(
        "/api/rolls/sanity", headers=auth_headers, json={"formula": "0/1d6", "sanity": 50}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["passed"] == (body["roll"] <= 50)
    if body["passed"]:
        assert body["loss"]["total"] == 0
    else:
        assert 1 <= body["loss"]["total"] <= 6
    assert body["remaining_sanity"] == 50 - body["loss"]["total"]
    assert body["temporary_insanity_risk"] is False


def test_sanity_check_requires_split_formula(test_client, auth_headers):
    resp = test_client.post(
        "/api/rolls/sanity", headers=auth_headers, json={"formula": "1d6", "sanity": 50}
    )
    assert resp.status_code == 400


def test_horror_check(test_client, auth_headers):
    resp = test_client.post(
        "/api/rolls/horror", headers=auth_headers, json={"horror_level": "major", "sanity": 50}
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "loss": 6,
        "remaining_sanity": 44,
        "sanity_roll_required": True,
        "temporary_insanity_risk": True,
    }


def test_horror_check_mythos_dulls_the_shock(test_client, auth_headers):
    body = test_client.post(
        "/api/rolls/horror",
        headers=auth_headers,
        json={"horror_level": "moderate", "sanity": 50, "mythos": 45},
    ).json()
    assert body["loss"] == 1  # 3 - 45 // 20
    assert body["sanity_roll_required"] is False


def test_horror_check_counts_earlier_losses(test_client, auth_headers):
    body = test_client.post(
        "/api/rolls/horror",
        headers=auth_headers,
        json={"horror_level": "minor", "sanity": 50, "lost_this_round": 4},
    ).json()
    assert body["loss"] == 1
    assert body["sanity_roll_required"] is True
    assert body["temporary_insanity_risk"] is False


def test_horror_check_unknown_level(test_client, auth_headers):
    resp = test_client.post(
        "/api/rolls/horror", headers=auth_headers, json={"horror_level": "cosmic", "sanity": 50}
    )
    assert resp.status_code == 422
