"""Tests for API endpoints."""

from unittest.mock import AsyncMock

import pytest

from app.errors import UpstreamUnavailable
from app.main import app
from app.schemas.geocode import GeocodeResult
from app.services.geocoder import get_geocoder


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client, seeded_db):
        """Test health endpoint returns table sizes."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["codes"] == 5
        assert data["neighborhoods"] == 3
        assert data["incidents"]["record_count"] == 6
        assert data["incidents"]["oldest_record"].startswith("2022-12-31")

    @pytest.mark.asyncio
    async def test_health_empty_store(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["incidents"]["record_count"] == 0

    @pytest.mark.asyncio
    async def test_probes(self, client):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}


class TestRootEndpoint:
    """Tests for root endpoint."""

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client):
        """Test root endpoint returns API info."""
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "St. Paul Crime API"
        assert "version" in data
        assert "docs" in data


class TestCatalogEndpoints:
    """Tests for /codes and /neighborhoods."""

    @pytest.mark.asyncio
    async def test_list_codes(self, client, seeded_db):
        response = await client.get("/api/v1/codes")

        assert response.status_code == 200
        data = response.json()
        assert [row["code"] for row in data] == [110, 120, 300, 700, 9954]
        assert data[2] == {"code": 300, "type": "Robbery"}

    @pytest.mark.asyncio
    async def test_list_codes_filtered(self, client, seeded_db):
        response = await client.get("/api/v1/codes", params={"code": "700,110,oops"})

        assert [row["code"] for row in response.json()] == [110, 700]

    @pytest.mark.asyncio
    async def test_list_codes_leading_digits(self, client, seeded_db):
        response = await client.get("/api/v1/codes", params={"code": "300abc,9954.0"})

        assert [row["code"] for row in response.json()] == [300, 9954]

    @pytest.mark.asyncio
    async def test_list_neighborhoods(self, client, seeded_db):
        response = await client.get("/api/v1/neighborhoods", params={"id": "16,11"})

        assert response.status_code == 200
        assert response.json() == [
            {"id": 11, "name": "Hamline/Midway"},
            {"id": 16, "name": "Summit Hill"},
        ]

    @pytest.mark.asyncio
    async def test_empty_catalog(self, client):
        response = await client.get("/api/v1/codes")

        assert response.status_code == 200
        assert response.json() == []


class TestIncidentsEndpoints:
    """Tests for incident queries."""

    @pytest.mark.asyncio
    async def test_list_incidents_empty(self, client):
        response = await client.get("/api/v1/incidents")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_list_incidents_newest_first(self, client, seeded_db):
        response = await client.get("/api/v1/incidents")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 6
        assert data[0]["case_number"] == "23000005"
        assert data[-1]["case_number"] == "22251234"

    @pytest.mark.asyncio
    async def test_record_format(self, client, seeded_db):
        response = await client.get("/api/v1/incidents", params={"code": "300"})

        assert response.json() == [
            {
                "case_number": "23000002",
                "date": "2023-01-15",
                "time": "12:30:00",
                "code": 300,
                "incident": "Robbery, Street",
                "police_grid": 106,
                "neighborhood_number": 14,
                "block": "16X SNELLING AV S",
            }
        ]

    @pytest.mark.asyncio
    async def test_filters_combined(self, client, seeded_db):
        response = await client.get(
            "/api/v1/incidents",
            params={
                "start_date": "2023-01-01",
                "end_date": "2023-01-31",
                "neighborhood": "11,14",
            },
        )

        assert [row["case_number"] for row in response.json()] == [
            "23000004",
            "23000002",
            "23000001",
        ]

    @pytest.mark.asyncio
    async def test_grid_filter(self, client, seeded_db):
        response = await client.get("/api/v1/incidents", params={"grid": "126"})

        assert [row["case_number"] for row in response.json()] == ["23000003"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("limit", "expected"), [("2", 2), ("abc", 6), ("-1", 6), ("0", 6)])
    async def test_limit(self, client, seeded_db, limit, expected):
        response = await client.get("/api/v1/incidents", params={"limit": limit})

        assert response.status_code == 200
        assert len(response.json()) == expected

    @pytest.mark.asyncio
    async def test_malformed_date(self, client, seeded_db):
        response = await client.get("/api/v1/incidents", params={"start_date": "Jan 1"})

        assert response.status_code == 400
        assert "start_date" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_start_after_end_is_empty(self, client, seeded_db):
        response = await client.get(
            "/api/v1/incidents",
            params={"start_date": "2023-02-01", "end_date": "2023-01-01"},
        )

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_get_incident(self, client, seeded_db):
        response = await client.get("/api/v1/incidents/23000003")

        assert response.status_code == 200
        assert response.json()["block"] == "4XX GRAND AV"

    @pytest.mark.asyncio
    async def test_get_incident_not_found(self, client, seeded_db):
        response = await client.get("/api/v1/incidents/nonexistent")

        assert response.status_code == 404


class TestMutationEndpoints:
    """Tests for PUT /new-incident and DELETE /remove-incident."""

    @pytest.mark.asyncio
    async def test_create_incident(self, client, seeded_db, new_incident):
        response = await client.put("/api/v1/new-incident", json=new_incident)

        assert response.status_code == 200
        assert response.json() == {"status": "OK", "case_number": "23009999"}

        fetched = await client.get("/api/v1/incidents/23009999")
        assert fetched.json()["time"] == "14:45:00"

    @pytest.mark.asyncio
    async def test_create_duplicate(self, client, seeded_db, new_incident):
        new_incident["case_number"] = "23000002"

        response = await client.put("/api/v1/new-incident", json=new_incident)

        assert response.status_code == 409
        assert "23000002" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_create_missing_field(self, client, seeded_db, new_incident):
        del new_incident["block"]

        response = await client.put("/api/v1/new-incident", json=new_incident)

        assert response.status_code == 400
        assert "block" in response.json()["detail"]
        assert (await client.get("/api/v1/incidents/23009999")).status_code == 404

    @pytest.mark.asyncio
    async def test_create_malformed_field(self, client, seeded_db, new_incident):
        new_incident["code"] = "not-a-code"

        response = await client.put("/api/v1/new-incident", json=new_incident)

        assert response.status_code == 400
        assert "code" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_remove_incident(self, client, seeded_db):
        response = await client.request(
            "DELETE", "/api/v1/remove-incident", json={"case_number": "23000001"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "OK"
        assert (await client.get("/api/v1/incidents/23000001")).status_code == 404

        again = await client.request(
            "DELETE", "/api/v1/remove-incident", json={"case_number": "23000001"}
        )
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_remove_requires_case_number(self, client, seeded_db):
        response = await client.request("DELETE", "/api/v1/remove-incident", json={})

        assert response.status_code == 400


class TestGeocodeEndpoints:
    """Tests for the geocoder proxy."""

    @pytest.fixture
    def fake_geocoder(self):
        geocoder = AsyncMock()
        app.dependency_overrides[get_geocoder] = lambda: geocoder
        return geocoder

    @pytest.mark.asyncio
    async def test_search_defaults_to_city(self, client, fake_geocoder):
        fake_geocoder.search.return_value = GeocodeResult(
            lat=44.9537, lng=-93.09, label="Cathedral of Saint Paul"
        )

        response = await client.get("/api/v1/geocode/search", params={"q": "cathedral"})

        assert response.status_code == 200
        assert response.json()["label"] == "Cathedral of Saint Paul"
        query, region = fake_geocoder.search.call_args[0]
        assert query == "cathedral"
        assert region.min_lat == pytest.approx(44.883658)

    @pytest.mark.asyncio
    async def test_search_no_match(self, client, fake_geocoder):
        fake_geocoder.search.return_value = None

        response = await client.get(
            "/api/v1/geocode/search",
            params={"q": "nowhere", "min_lat": 44.9, "max_lat": 45.0, "min_lng": -93.2, "max_lng": -93.0},
        )

        assert response.status_code == 200
        assert response.json() is None
        region = fake_geocoder.search.call_args[0][1]
        assert region.max_lat == 45.0

    @pytest.mark.asyncio
    async def test_search_upstream_down(self, client, fake_geocoder):
        fake_geocoder.search.side_effect = UpstreamUnavailable("Geocoder unavailable after 2 attempts")

        response = await client.get("/api/v1/geocode/search", params={"q": "cathedral"})

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_reverse(self, client, fake_geocoder):
        fake_geocoder.reverse.return_value = "Grand Avenue, Saint Paul"

        response = await client.get("/api/v1/geocode/reverse", params={"lat": 44.94, "lng": -93.14})

        assert response.status_code == 200
        assert response.json() == {"lat": 44.94, "lng": -93.14, "label": "Grand Avenue, Saint Paul"}
