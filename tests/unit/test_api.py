"""API tests through the FastAPI test client.

Each test class builds its own application on an in-memory SQLite cache.
"""

from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from disaster_hub.config import Settings
from disaster_hub.main import create_app
from disaster_hub.services.cache.service import CacheEntry

ADMIN = {"x-user-id": "netrunnerX"}
CONTRIBUTOR = {"x-user-id": "contributor1"}


class ApiTestCase:
    """Starts the app (and its lifespan) around every test."""

    settings = Settings(database_url="sqlite://", rate_limit_max_requests=1000)

    def setup_method(self) -> None:
        self.app = create_app(self.settings)
        self.client = TestClient(self.app)
        self.client.__enter__()

    def teardown_method(self) -> None:
        self.client.__exit__(None, None, None)


class TestHealthAndAuth(ApiTestCase):
    """Tests for /health and the mock authentication."""

    def test_health(self) -> None:
        response = self.client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_credentials(self) -> None:
        response = self.client.get("/api/disasters")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"

    def test_unknown_user(self) -> None:
        response = self.client.get("/api/disasters", headers={"x-user-id": "mallory"})
        assert response.status_code == 401

    def test_bearer_token(self) -> None:
        response = self.client.get(
            "/api/disasters", headers={"Authorization": "Bearer reliefAdmin"}
        )
        assert response.status_code == 200

    def test_admin_only_route(self) -> None:
        response = self.client.delete("/api/disasters/disaster_3", headers=CONTRIBUTOR)
        assert response.status_code == 403
        assert response.json()["error"]["details"]["required"] == ["admin"]

    def test_unknown_route_uses_error_envelope(self) -> None:
        response = self.client.get("/api/nope", headers=ADMIN)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_invalid_query_parameter(self) -> None:
        response = self.client.get(
            "/api/disasters/disaster_1/resources?lat=123&lng=0", headers=ADMIN
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestDisasterRoutes(ApiTestCase):
    """Tests for disaster CRUD."""

    def test_list(self) -> None:
        response = self.client.get("/api/disasters?tag=flood", headers=ADMIN)
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["disasters"][0]["id"] == "disaster_1"

    def test_get_missing(self) -> None:
        response = self.client.get("/api/disasters/missing", headers=ADMIN)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_create_geocodes_location_name(self) -> None:
        response = self.client.post(
            "/api/disasters",
            json={"title": "Brooklyn Storm", "description": "Trees down", "location_name": "Brooklyn"},
            headers=CONTRIBUTOR,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["owner_id"] == "contributor1"
        assert body["location"] == {"lat": 40.6782, "lng": -73.9442}

    def test_create_validation(self) -> None:
        response = self.client.post(
            "/api/disasters", json={"title": "", "description": "x"}, headers=ADMIN
        )
        assert response.status_code == 422

    def test_update_by_owner(self) -> None:
        response = self.client.put(
            "/api/disasters/disaster_3", json={"title": "Queens Fire (contained)"}, headers=CONTRIBUTOR
        )
        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Queens Fire (contained)"
        assert body["audit_trail"][-1]["user_id"] == "contributor1"

    def test_update_by_non_owner_forbidden(self) -> None:
        response = self.client.put(
            "/api/disasters/disaster_1", json={"title": "x"}, headers=CONTRIBUTOR
        )
        assert response.status_code == 403

    def test_admin_delete(self) -> None:
        response = self.client.delete("/api/disasters/disaster_2", headers=ADMIN)
        assert response.status_code == 200
        assert self.client.get("/api/disasters/disaster_2", headers=ADMIN).status_code == 404


class TestGeocodeRoutes(ApiTestCase):
    """Tests for the geocoding endpoints."""

    def test_geocode_description(self) -> None:
        response = self.client.post(
            "/api/geocode", json={"description": "Flooding reported in Lower East Side"}, headers=ADMIN
        )
        body = response.json()
        assert body["success"] is True
        assert body["extracted_location"] == "Lower East Side"
        assert body["coordinates"] == {"lat": 40.7209, "lng": -73.9896}

    def test_geocode_result_is_cached(self) -> None:
        self.client.post("/api/geocode", json={"location_name": "Queens"}, headers=ADMIN)
        cache = self.app.state.cache
        key = cache.build_geocode_key("Queens")
        assert self.client.portal.call(cache.get, key) == {"lat": 40.7282, "lng": -73.7949}

    def test_geocode_requires_input(self) -> None:
        response = self.client.post("/api/geocode", json={}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    def test_geocode_nothing_extracted(self) -> None:
        response = self.client.post(
            "/api/geocode", json={"description": "water everywhere"}, headers=ADMIN
        )
        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_geocode_location_path(self) -> None:
        response = self.client.get("/api/geocode/location/Bronx", headers=ADMIN)
        assert response.json()["coordinates"] == {"lat": 40.8448, "lng": -73.8648}


class TestResourceRoutes(ApiTestCase):
    """Tests for nearby resources and resource management."""

    def test_nearby_is_cached_on_second_call(self) -> None:
        url = "/api/disasters/disaster_1/resources?lat=40.7128&lng=-74.0060&radius=5"
        first = self.client.get(url, headers=ADMIN).json()
        second = self.client.get(url, headers=ADMIN).json()
        assert first["cached"] is False
        assert second["cached"] is True
        assert [r["id"] for r in first["resources"]] == ["resource_2"]
        assert second["resources"] == first["resources"]

    def test_distinct_radius_is_distinct_query(self) -> None:
        base = "/api/disasters/disaster_1/resources?lat=40.7128&lng=-74.0060"
        self.client.get(f"{base}&radius=5", headers=ADMIN)
        response = self.client.get(f"{base}&radius=20", headers=ADMIN).json()
        assert response["cached"] is False
        assert response["count"] == 5

    def test_lon_alias_and_type_filter(self) -> None:
        response = self.client.get(
            "/api/disasters/disaster_1/resources?lat=40.7128&lon=-74.0060&radius=20&type=shelter",
            headers=ADMIN,
        ).json()
        assert {r["id"] for r in response["resources"]} == {"resource_1", "resource_4"}
        assert response["filters"]["type"] == "shelter"

    def test_defaults_to_disaster_location(self) -> None:
        response = self.client.get("/api/disasters/disaster_2/resources", headers=ADMIN).json()
        assert response["search_location"] == {"lat": 40.6782, "lng": -73.9442}
        assert response["radius"] == 10

    def test_disaster_without_location_uses_default_center(self) -> None:
        response = self.client.get("/api/disasters/disaster_3/resources", headers=ADMIN).json()
        assert response["search_location"] == {"lat": 40.7128, "lng": -74.006}

    def test_types(self) -> None:
        response = self.client.get("/api/disasters/disaster_1/resources/types", headers=ADMIN).json()
        assert response["total_resources"] == 5
        assert len(response["resource_types"]) == 4

    def test_create_and_update(self) -> None:
        created = self.client.post(
            "/api/disasters/disaster_1/resources",
            json={"name": "Pop-up Clinic", "location_name": "City Hall", "type": "medical",
                  "lat": 40.7128, "lng": -74.006, "capacity": 20},
            headers=CONTRIBUTOR,
        )
        assert created.status_code == 201
        resource_id = created.json()["id"]

        updated = self.client.put(
            f"/api/disasters/disaster_1/resources/{resource_id}",
            json={"current_occupancy": 5},
            headers=CONTRIBUTOR,
        )
        assert updated.status_code == 200
        assert updated.json()["current_occupancy"] == 5

    def test_update_missing_resource(self) -> None:
        response = self.client.put(
            "/api/disasters/disaster_1/resources/missing", json={"name": "x"}, headers=ADMIN
        )
        assert response.status_code == 404

    def test_created_resource_scoped_to_its_disaster(self) -> None:
        created = self.client.post(
            "/api/disasters/disaster_1/resources",
            json={"name": "Pop-up Clinic", "location_name": "City Hall", "type": "medical",
                  "lat": 40.7128, "lng": -74.006},
            headers=CONTRIBUTOR,
        ).json()
        url = "/api/disasters/{}/resources?lat=40.7128&lng=-74.006&radius=1"
        other = self.client.get(url.format("disaster_3"), headers=ADMIN).json()
        own = self.client.get(url.format("disaster_1"), headers=ADMIN).json()
        assert created["id"] not in [r["id"] for r in other["resources"]]
        assert [r["id"] for r in own["resources"]] == [created["id"]]

        types = self.client.get("/api/disasters/disaster_3/resources/types", headers=ADMIN).json()
        assert types["total_resources"] == 5

    def test_create_invalidates_cached_answers(self) -> None:
        url = "/api/disasters/disaster_1/resources?lat=40.7128&lng=-74.006&radius=1"
        assert self.client.get(url, headers=ADMIN).json()["count"] == 0
        assert self.client.get(url, headers=ADMIN).json()["cached"] is True

        created = self.client.post(
            "/api/disasters/disaster_1/resources",
            json={"name": "Pop-up Clinic", "location_name": "City Hall", "type": "medical",
                  "lat": 40.7128, "lng": -74.006},
            headers=CONTRIBUTOR,
        ).json()
        body = self.client.get(url, headers=ADMIN).json()
        assert body["cached"] is False
        assert [r["id"] for r in body["resources"]] == [created["id"]]

    def test_update_invalidates_cached_answers(self) -> None:
        url = "/api/disasters/disaster_2/resources?lat=40.7128&lng=-74.006&radius=5"
        assert self.client.get(url, headers=ADMIN).json()["resources"][0]["current_occupancy"] == 120
        self.client.put(
            "/api/disasters/disaster_1/resources/resource_2",
            json={"current_occupancy": 130},
            headers=CONTRIBUTOR,
        )
        body = self.client.get(url, headers=ADMIN).json()
        assert body["cached"] is False
        assert body["resources"][0]["current_occupancy"] == 130


class TestFeedRoutes(ApiTestCase):
    """Tests for social media, official updates and image verification."""

    def test_social_media_cached(self) -> None:
        url = "/api/disasters/disaster_1/social-media"
        assert self.client.get(url, headers=ADMIN).json()["cached"] is False
        assert self.client.get(url, headers=ADMIN).json()["cached"] is True

    def test_social_media_realtime_bypasses_cache(self) -> None:
        url = "/api/disasters/disaster_1/social-media"
        self.client.get(url, headers=ADMIN)
        body = self.client.get(f"{url}?realtime=true", headers=ADMIN).json()
        assert body["cached"] is False
        assert body["realtime"] is True
        assert any(post["is_realtime"] for post in body["posts"])

    def test_priority_posts(self) -> None:
        body = self.client.get("/api/disasters/disaster_1/social-media/priority", headers=ADMIN).json()
        assert [p["id"] for p in body["priority_posts"]] == ["post_3", "post_1"]

    def test_submit_report(self) -> None:
        response = self.client.post(
            "/api/disasters/disaster_1/social-media/report",
            json={"content": "Need boats on 5th street", "urgency": "high"},
            headers=CONTRIBUTOR,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["report"]["user_id"] == "contributor1"
        assert body["social_media_post"]["urgency"] == "high"

    def test_submitted_report_appears_in_feed(self) -> None:
        url = "/api/disasters/disaster_1/social-media"
        assert self.client.get(url, headers=ADMIN).json()["count"] == 5
        report = self.client.post(
            f"{url}/report",
            json={"content": "Need boats on 5th street", "urgency": "high"},
            headers=CONTRIBUTOR,
        ).json()

        body = self.client.get(url, headers=ADMIN).json()
        assert body["cached"] is False
        assert body["posts"][0]["id"] == report["social_media_post"]["id"]
        other = self.client.get("/api/disasters/disaster_2/social-media", headers=ADMIN).json()
        assert report["social_media_post"]["id"] not in [p["id"] for p in other["posts"]]

    def test_official_updates_refresh_invalidates(self) -> None:
        url = "/api/disasters/disaster_1/official-updates"
        first = self.client.get(url, headers=ADMIN).json()
        assert [u["id"] for u in first["updates"]] == ["update_2", "update_1", "update_4"]
        assert self.client.get(url, headers=ADMIN).json()["cached"] is True

        refresh = self.client.post(f"{url}/refresh", headers=ADMIN).json()
        assert refresh["invalidated"] == 1
        assert self.client.get(url, headers=ADMIN).json()["cached"] is False

    def test_official_updates_fresh(self) -> None:
        body = self.client.get(
            "/api/disasters/disaster_1/official-updates?fresh=true", headers=ADMIN
        ).json()
        assert body["fresh_data"] is True
        assert body["cached"] is False
        assert any(u["is_scraped"] for u in body["updates"])

    def test_official_sources(self) -> None:
        body = self.client.get(
            "/api/disasters/disaster_1/official-updates/sources", headers=ADMIN
        ).json()
        assert body["count"] == 5

    def test_verify_image_cached(self) -> None:
        url = "/api/disasters/disaster_1/verify-image"
        payload = {"image_url": "https://example.com/flood.jpg"}
        first = self.client.post(url, json=payload, headers=ADMIN).json()
        second = self.client.post(url, json=payload, headers=ADMIN).json()
        assert first["cached"] is False
        assert second["cached"] is True
        assert second["verification"] == first["verification"]

    def test_verify_batch_limit(self) -> None:
        url = "/api/disasters/disaster_1/verify-image/batch"
        urls = [f"https://example.com/{i}.jpg" for i in range(11)]
        assert self.client.post(url, json={"image_urls": urls}, headers=ADMIN).status_code == 422

        body = self.client.post(url, json={"image_urls": urls[:3]}, headers=ADMIN).json()
        assert body["total"] == 3
        assert body["succeeded"] == 3


class TestCacheAdminRoutes(ApiTestCase):
    """Tests for cache administration."""

    def test_clear_requires_admin(self) -> None:
        assert self.client.delete("/api/cache", headers=CONTRIBUTOR).status_code == 403

    def test_clear_and_cleanup(self) -> None:
        url = "/api/disasters/disaster_1/social-media"
        self.client.get(url, headers=ADMIN)
        assert self.client.post("/api/cache/cleanup", headers=ADMIN).json()["success"] is True
        assert self.client.get(url, headers=ADMIN).json()["cached"] is True

        assert self.client.delete("/api/cache", headers=ADMIN).json()["success"] is True
        assert self.client.get(url, headers=ADMIN).json()["cached"] is False


class TestUnavailableCache(ApiTestCase):
    """Cached endpoints answer the same when the cache table is gone."""

    def setup_method(self) -> None:
        super().setup_method()
        self.working_app = create_app(self.settings)
        self.working = TestClient(self.working_app)
        self.working.__enter__()

        cache = self.app.state.cache
        SQLModel.metadata.drop_all(cache._engine, tables=[CacheEntry.__table__])

    def teardown_method(self) -> None:
        self.working.__exit__(None, None, None)
        super().teardown_method()

    def _both(self, method: str, url: str, **kwargs) -> tuple[dict, dict]:
        broken = getattr(self.client, method)(url, headers=ADMIN, **kwargs)
        working = getattr(self.working, method)(url, headers=ADMIN, **kwargs)
        assert broken.status_code == working.status_code == 200
        return broken.json(), working.json()

    def test_resources(self) -> None:
        url = "/api/disasters/disaster_1/resources?lat=40.7128&lng=-74.006&radius=20"
        for _ in range(2):
            broken, working = self._both("get", url)
            assert broken["cached"] is False
            assert [(r["id"], r["distance"]) for r in broken["resources"]] == [
                (r["id"], r["distance"]) for r in working["resources"]
            ]

    def test_geocode(self) -> None:
        for _ in range(2):
            payload = {"description": "Flooding reported in Lower East Side"}
            broken, working = self._both("post", "/api/geocode", json=payload)
            assert broken == working
            assert broken["coordinates"] == {"lat": 40.7209, "lng": -73.9896}

    def test_social_media(self) -> None:
        for _ in range(2):
            broken, working = self._both("get", "/api/disasters/disaster_1/social-media")
            assert broken["cached"] is False
            assert [p["id"] for p in broken["posts"]] == [p["id"] for p in working["posts"]]


class TestRealtime(ApiTestCase):
    """Tests for the /ws event stream."""

    def test_disaster_create_is_broadcast(self) -> None:
        with self.client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            assert ws.receive_json()["event"] == "pong"

            self.client.post(
                "/api/disasters",
                json={"title": "Bronx Storm", "description": "High winds", "tags": ["storm"]},
                headers=ADMIN,
            )
            message = ws.receive_json()
            assert message["event"] == "disaster_updated"
            assert message["data"]["action"] == "create"
            assert message["data"]["disaster"]["title"] == "Bronx Storm"


class TestRateLimit(ApiTestCase):
    """Tests for the rate limit middleware."""

    settings = Settings(database_url="sqlite://", rate_limit_max_requests=2)

    def test_limit_exceeded(self) -> None:
        first = self.client.get("/api/disasters", headers=ADMIN)
        assert first.headers["X-RateLimit-Remaining"] == "1"
        self.client.get("/api/disasters", headers=ADMIN)

        response = self.client.get("/api/disasters", headers=ADMIN)
        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMITED"
        assert int(response.headers["Retry-After"]) > 0

    def test_health_not_limited(self) -> None:
        for _ in range(5):
            assert self.client.get("/health").status_code == 200

    def test_clients_limited_separately(self) -> None:
        for _ in range(3):
            self.client.get("/api/disasters", headers=ADMIN)
        assert self.client.get("/api/disasters", headers=CONTRIBUTOR).status_code == 200
