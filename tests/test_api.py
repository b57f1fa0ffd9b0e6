from fastapi.testclient import TestClient

from particle_life.api import app
from particle_life.force_table import ForceTable


def test_health():
    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok"}


def test_get_config_returns_matrix_and_config():
    client = TestClient(app)
    response = client.get("/config")
    assert response.status_code == 200
    data = response.json()
    assert "config" in data
    assert "matrix" in data
    colors = data["config"]["colors_count"]
    assert len(data["matrix"]) == colors


def test_state_lists_current_generation():
    client = TestClient(app)
    data = client.get("/state").json()
    assert len(data["particles"]) == data["config"]["n_particles"]
    assert len(data["palette"]) == data["colors_count"]
    for particle in data["particles"][:20]:
        assert 0.0 <= particle["x"] < data["width"]
        assert 0.0 <= particle["y"] < data["height"]
        assert 0 <= particle["color"] < data["colors_count"]


def test_post_matrix_replaces_table():
    client = TestClient(app)
    colors = client.get("/config").json()["config"]["colors_count"]
    matrix = [[0.5 if i == j else -0.25 for j in range(colors)] for i in range(colors)]

    response = client.post("/matrix", json={"matrix": matrix})

    assert response.status_code == 200
    assert response.json()["matrix"] == matrix
    assert client.get("/config").json()["matrix"] == matrix


def test_post_matrix_with_wrong_dimensions_is_rejected():
    client = TestClient(app)
    before = client.get("/config").json()["matrix"]
    size = len(before) + 1
    response = client.post("/matrix", json={"matrix": [[0.0] * size] * size})
    assert response.status_code == 400
    assert client.get("/config").json()["matrix"] == before


def test_post_matrix_randomize():
    client = TestClient(app)
    response = client.post("/matrix/randomize", json={"low": -0.5, "high": 0.5})
    assert response.status_code == 200
    values = [v for row in response.json()["matrix"] for v in row]
    assert all(-0.5 <= v < 0.5 for v in values)

    response = client.post("/matrix/randomize", json={"low": 1.0, "high": -1.0})
    assert response.status_code == 400


def test_post_config_resizes_matrix_with_reset():
    client = TestClient(app)
    initial = client.get("/config").json()
    current_colors = initial["config"]["colors_count"]
    new_colors = current_colors + 1

    response = client.post(
        "/config",
        json={"colors_count": new_colors, "n_particles": 50, "reset_matrix": True},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["config"]["colors_count"] == new_colors
    assert payload["config"]["n_particles"] == 50
    assert payload["matrix"] == ForceTable.default(new_colors).tolist()

    client.post(
        "/config",
        json={"colors_count": current_colors, "n_particles": initial["config"]["n_particles"], "reset_matrix": True},
    )


def test_post_config_validates_fields():
    client = TestClient(app)
    assert client.post("/config", json={"colors_count": 0}).status_code == 422
    assert client.post("/config", json={"damping": 1.5}).status_code == 422


def test_reset():
    client = TestClient(app)
    assert client.post("/reset").json() == {"status": "reset"}
    assert client.get("/state").json()["step"] == 0


def test_presets_listing_and_apply():
    client = TestClient(app)
    initial = client.get("/config").json()
    presets = client.get("/presets").json()
    names = {p["name"] for p in presets}
    assert {"default", "cyclic", "chaos"} <= names

    response = client.post("/presets/cyclic")
    assert response.status_code == 200
    payload = response.json()
    assert payload["config"]["colors_count"] == 3
    assert len(payload["matrix"]) == 3

    assert client.post("/presets/unknown").status_code == 404

    client.post(
        "/config",
        json={"colors_count": initial["config"]["colors_count"], "reset_matrix": True},
    )


def test_websocket_streams_state_messages():
    client = TestClient(app)
    with client.websocket_connect("/ws") as websocket:
        message = websocket.receive_json()
        assert message["type"] == "state"
        payload = message["payload"]
        assert "particles" in payload
        assert "matrix" in payload


def test_websocket_update_matrix_and_errors():
    client = TestClient(app)
    with client.websocket_connect("/ws") as websocket:
        initial = websocket.receive_json()["payload"]
        colors = initial["colors_count"]
        matrix = [[0.1] * colors for _ in range(colors)]

        websocket.send_json({"type": "update_matrix", "matrix": matrix})
        message = websocket.receive_json()
        assert message["type"] == "state"
        assert message["payload"]["matrix"] == matrix

        websocket.send_json({"type": "update_matrix", "matrix": [[1.0] * (colors + 1)]})
        assert websocket.receive_json()["type"] == "error"

        websocket.send_json({"type": "update_matrix"})
        assert websocket.receive_json()["type"] == "error"

        websocket.send_json({"type": "launch_rockets"})
        assert websocket.receive_json()["type"] == "error"


def test_websocket_use_preset_resizes():
    client = TestClient(app)
    initial = client.get("/config").json()
    with client.websocket_connect("/ws") as websocket:
        websocket.receive_json()
        websocket.send_json({"type": "use_preset", "name": "chaos"})
        message = websocket.receive_json()
        assert message["type"] == "state"
        matrix = message["payload"]["matrix"]
        assert len(matrix) == 5
        for row in matrix:
            assert len(row) == 5
    client.post(
        "/config",
        json={"colors_count": initial["config"]["colors_count"], "reset_matrix": True},
    )


def test_lifespan_runs_scheduler():
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()  # initial state
            streamed = websocket.receive_json()  # pushed by the frame scheduler
            assert streamed["type"] == "state"
            assert streamed["payload"]["step"] >= 1


def test_post_config_frame_interval_reaches_running_scheduler():
    from particle_life import api

    with TestClient(app) as client:
        previous = client.get("/config").json()["config"]["frame_interval"]
        try:
            response = client.post("/config", json={"frame_interval": 0.5})
            assert response.json()["config"]["frame_interval"] == 0.5
            assert api._scheduler.frame_interval == 0.5
        finally:
            client.post("/config", json={"frame_interval": previous})


def test_websocket_non_json_text_gets_error_reply():
    client = TestClient(app)
    with client.websocket_connect("/ws") as websocket:
        websocket.receive_json()

        websocket.send_text("not json")
        message = websocket.receive_json()
        assert message["type"] == "error"

        websocket.send_json({"type": "reset"})
        message = websocket.receive_json()
        assert message["type"] == "state"
        assert message["payload"]["step"] == 0
