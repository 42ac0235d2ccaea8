"""
HTTP tests for the annotator API
"""
from fastapi.testclient import TestClient

from map_annotator.main import create_app


def _create_session(client, map_id="jian_ye_cheng"):
    response = client.post("/sessions", json={"map_id": map_id})
    assert response.status_code == 201
    return response.json()


class TestMaps:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_list_maps(self, client):
        data = client.get("/maps").json()
        assert [m["id"] for m in data["maps"]][:2] == ["jian_ye_cheng", "zhu_zi_guo"]

    def test_get_map(self, client):
        data = client.get("/maps/zhu_zi_guo").json()
        assert (data["width"], data["height"]) == (191, 119)

    def test_unknown_map(self, client):
        assert client.get("/maps/nowhere").status_code == 404


class TestCoordinates:
    def test_parse(self, client):
        response = client.post("/coordinates/parse", json={"map_id": "jian_ye_cheng", "text": "100,50,营地\n(1,2)"})
        assert response.status_code == 200
        coords = response.json()["coordinates"]
        assert coords[0] == {"x": 100, "y": 50, "label": "营地", "visible": True}
        assert coords[1]["label"] == "1-2"

    def test_parse_format_error(self, client):
        response = client.post("/coordinates/parse", json={"map_id": "jian_ye_cheng", "text": "abc,def"})
        assert response.status_code == 422
        assert "abc,def" in response.json()["detail"]

    def test_parse_range_error(self, client):
        response = client.post("/coordinates/parse", json={"map_id": "jian_ye_cheng", "text": "288,1"})
        assert response.status_code == 422
        assert "287x143" in response.json()["detail"]

    def test_extract(self, client):
        response = client.post("/coordinates/extract", json={"text": "[坐标]A(1,2) text [坐标]B(3,4)"})
        assert [e["location"] for e in response.json()["coordinates"]] == ["A", "B"]


class TestGeometry:
    def test_marker(self, client):
        body = {
            "map_id": "map3",
            "coordinate": {"x": 600, "y": 450},
            "container": {"width": 800, "height": 600},
        }
        data = client.post("/geometry/marker", json=body).json()
        assert round(data["left_percent"], 6) == 50.0
        assert round(data["top_percent"], 6) == 50.0

    def test_pointer_inside_and_outside(self, client):
        container = {"left": 0, "top": 0, "width": 1200, "height": 1200}
        # 1200x900 map letterboxed at offset_y=150
        inside = client.post("/geometry/pointer", json={"map_id": "map3", "x": 0, "y": 1050, "container": container})
        assert inside.json()["coordinate"] == {"x": 0, "y": 0}
        outside = client.post("/geometry/pointer", json={"map_id": "map3", "x": 10, "y": 10, "container": container})
        assert outside.json()["coordinate"] is None

    def test_zero_sized_container_rejected(self, client):
        body = {"map_id": "map3", "x": 0, "y": 0, "container": {"width": 0, "height": 10}}
        assert client.post("/geometry/pointer", json=body).status_code == 422


class TestSessions:
    def test_apply_text_and_cap(self, client):
        session = _create_session(client)
        text = "\n".join(f"{i},{i}" for i in range(25))
        data = client.post(f"/sessions/{session['id']}/coordinates", json={"text": text}).json()
        assert len(data["coordinates"]) == 20
        assert data["dropped"] == 5
        assert "5" in data["message"]

    def test_apply_blank_text(self, client):
        session = _create_session(client)
        response = client.post(f"/sessions/{session['id']}/coordinates", json={"text": "  "})
        assert response.status_code == 422

    def test_apply_invalid_text_keeps_previous(self, client):
        session = _create_session(client)
        client.post(f"/sessions/{session['id']}/coordinates", json={"text": "1,1"})
        response = client.post(f"/sessions/{session['id']}/coordinates", json={"text": "2,2\n999,1"})
        assert response.status_code == 422
        data = client.get(f"/sessions/{session['id']}").json()
        assert [(c["x"], c["y"]) for c in data["coordinates"]] == [(1, 1)]

    def test_click_adds_grid_labelled_point(self, client):
        session = _create_session(client, "map3")
        container = {"width": 1200, "height": 900}
        data = client.post(f"/sessions/{session['id']}/click", json={"x": 600, "y": 450, "container": container}).json()
        assert data["added"] == {"x": 600, "y": 450, "label": "1-1", "visible": True}
        assert data["text"] == "600,450,1-1"

    def test_click_outside_image(self, client):
        session = _create_session(client, "map3")
        container = {"width": 1200, "height": 1200}
        data = client.post(f"/sessions/{session['id']}/click", json={"x": 5, "y": 5, "container": container}).json()
        assert data["added"] is None
        assert data["coordinates"] == []

    def test_click_when_full(self, client):
        session = _create_session(client, "map3")
        client.post(f"/sessions/{session['id']}/coordinates", json={"text": "\n".join(["1,1"] * 20)})
        container = {"width": 1200, "height": 900}
        data = client.post(f"/sessions/{session['id']}/click", json={"x": 1, "y": 1, "container": container}).json()
        assert data["added"] is None
        assert "20" in data["message"]

    def test_toggle_and_clear(self, client):
        session = _create_session(client)
        client.post(f"/sessions/{session['id']}/coordinates", json={"text": "1,1\n2,2"})
        data = client.post(f"/sessions/{session['id']}/coordinates/1/toggle").json()
        assert [c["visible"] for c in data["coordinates"]] == [True, False]
        assert client.post(f"/sessions/{session['id']}/coordinates/7/toggle").status_code == 404
        data = client.delete(f"/sessions/{session['id']}/coordinates").json()
        assert data["coordinates"] == []

    def test_change_map_clears(self, client):
        session = _create_session(client)
        client.post(f"/sessions/{session['id']}/coordinates", json={"text": "1,1"})
        data = client.put(f"/sessions/{session['id']}/map", json={"map_id": "map4"}).json()
        assert data["map"]["id"] == "map4"
        assert data["coordinates"] == []

    def test_unknown_session(self, client):
        assert client.get("/sessions/missing").status_code == 404

    def test_delete_session(self, client):
        session = _create_session(client)
        assert client.delete(f"/sessions/{session['id']}").status_code == 204
        assert client.get(f"/sessions/{session['id']}").status_code == 404
        assert client.delete(f"/sessions/{session['id']}").status_code == 404

    def test_oldest_session_evicted(self, catalog):
        client = TestClient(create_app(catalog, max_sessions=1))
        first = _create_session(client)
        second = _create_session(client)
        assert client.get(f"/sessions/{first['id']}").status_code == 404
        assert client.get(f"/sessions/{second['id']}").status_code == 200


class TestOCR:
    def test_session_ocr_filters_out_of_bounds(self, client, fake_vision, png_data_url):
        fake_vision.pages_text = [["[坐标]普陀山(48,26)"], ["[坐标]远方(500,500) [坐标]建业城(67,89)"]]
        session = _create_session(client)
        response = client.post(f"/sessions/{session['id']}/ocr", json={"images": [png_data_url, png_data_url]})
        assert response.status_code == 200
        data = response.json()
        assert [c["label"] for c in data["coordinates"]] == ["普陀山", "建业城"]
        assert data["rejected"] == [{"location": "远方", "x": 500, "y": 500}]
        assert len(data["extracted"]) == 3

    def test_session_ocr_unlabelled_entry_gets_grid_label(self, client, fake_vision, png_data_url):
        fake_vision.pages_text = [["[坐标](1,2) [坐标]East Gate(3,4)"]]
        session = _create_session(client)
        data = client.post(f"/sessions/{session['id']}/ocr", json={"images": [png_data_url]}).json()
        assert [c["label"] for c in data["coordinates"]] == ["1-1", "East Gate"]
        assert data["text"] == "1,2,1-1\n(3,4) East Gate"
        reapplied = client.post(f"/sessions/{session['id']}/coordinates", json={"text": data["text"]})
        assert reapplied.status_code == 200
        assert reapplied.json()["coordinates"] == data["coordinates"]

    def test_session_ocr_no_matches(self, client, fake_vision, png_data_url):
        fake_vision.pages_text = [["普通文本"]]
        session = _create_session(client)
        data = client.post(f"/sessions/{session['id']}/ocr", json={"images": [png_data_url]}).json()
        assert data["coordinates"] == []
        assert "No tagged coordinates" in data["message"]

    def test_session_ocr_failure_adds_nothing(self, client, fake_vision, png_data_url):
        fake_vision.pages_text = [["[坐标]普陀山(48,26)"], RuntimeError("boom")]
        session = _create_session(client)
        response = client.post(f"/sessions/{session['id']}/ocr", json={"images": [png_data_url, png_data_url]})
        assert response.status_code == 502
        assert "image 2" in response.json()["detail"]
        assert client.get(f"/sessions/{session['id']}").json()["coordinates"] == []

    def test_ocr_endpoint(self, client, fake_vision, png_data_url):
        fake_vision.pages_text = [["[坐标]朱紫国(123,45)"]]
        data = client.post("/ocr", json={"image_b64": png_data_url}).json()
        assert data["ocr_image_size"] == {"w": 40, "h": 20}
        assert data["text"] == "[坐标]朱紫国(123,45)"
        assert data["coordinates"] == [{"location": "朱紫国", "x": 123, "y": 45}]

    def test_ocr_requires_image(self, client):
        assert client.post("/ocr", json={}).status_code == 400
