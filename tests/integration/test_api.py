"""
Integration tests for the API endpoints.
"""

from httpx import AsyncClient

from buildqueue.constants import MAX_ATTEMPTS


class TestQueueAPI:
    """Integration tests for queue API endpoints."""

    async def test_enqueue(self, client: AsyncClient):
        """Test adding a package to the queue."""
        response = await client.post("/v1/queue", json={"name": "serde", "version": "1.0.0"})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "serde"
        assert data["version"] == "1.0.0"
        assert data["attempt"] == 0
        assert data["stalled"] is False

    async def test_enqueue_validation(self, client: AsyncClient):
        """Test that name and version are required."""
        response = await client.post("/v1/queue", json={"name": "serde"})

        assert response.status_code == 422

    async def test_list_queue_in_build_order(self, client: AsyncClient):
        """Test listing entries oldest first."""
        for name in ("a", "b", "c"):
            await client.post("/v1/queue", json={"name": name, "version": "1.0.0"})

        response = await client.get("/v1/queue")

        assert response.status_code == 200
        data = response.json()
        assert [e["name"] for e in data["entries"]] == ["a", "b", "c"]
        ids = [e["id"] for e in data["entries"]]
        assert ids == sorted(ids)
        assert data["eligible"] == 3
        assert data["stalled"] == 0

    async def test_list_queue_stalled(self, client: AsyncClient, add_entry):
        """Test that stalled entries are only listed on request."""
        await add_entry("ok", "1.0.0", attempt=1)
        await add_entry("poison", "0.1.0", attempt=MAX_ATTEMPTS)

        default = (await client.get("/v1/queue")).json()
        everything = (await client.get("/v1/queue", params={"include_stalled": True})).json()

        assert [e["name"] for e in default["entries"]] == ["ok"]
        assert [(e["name"], e["stalled"]) for e in everything["entries"]] == [
            ("ok", False),
            ("poison", True),
        ]
        assert everything["stalled"] == 1

    async def test_list_queue_pagination(self, client: AsyncClient):
        """Test limit and offset."""
        for name in ("a", "b", "c"):
            await client.post("/v1/queue", json={"name": name, "version": "1.0.0"})

        data = (await client.get("/v1/queue", params={"limit": 1, "offset": 1})).json()

        assert [e["name"] for e in data["entries"]] == ["b"]
        assert data["limit"] == 1
        assert data["offset"] == 1


class TestHealthAPI:
    """Integration tests for health endpoints."""

    async def test_health(self, client: AsyncClient):
        """Test the health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"

    async def test_live(self, client: AsyncClient):
        """Test the liveness probe."""
        response = await client.get("/live")

        assert response.json() == {"alive": True}

    async def test_metrics(self, client: AsyncClient):
        """Test the Prometheus endpoint."""
        await client.get("/live")

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "api_requests_total" in response.text
