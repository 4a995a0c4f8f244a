"""
Integration tests for the aiohttp application.
"""

import pytest
from aiohttp.test_utils import TestClient, TestServer

from bangrouter.analytics.aggregator import UsageAggregator
from bangrouter.analytics.parser import UsageLogParser
from bangrouter.analytics.writer import UsageLog
from bangrouter.commands.models import CommandDefinition
from bangrouter.commands.registry import CommandRegistry
from bangrouter.server import create_app


@pytest.fixture
def app(registry, usage_logger, aggregator):
    return create_app(registry, usage_logger, aggregator)


async def redirect_target(client: TestClient, query: str, **kwargs) -> str:
    response = await client.get("/", params={"q": query}, allow_redirects=False, **kwargs)
    assert response.status == 303
    return response.headers["Location"]


class TestRedirectEndpoint:
    """Test GET /."""

    @pytest.mark.asyncio
    async def test_redirects(self, app):
        async with TestClient(TestServer(app)) as client:
            assert await redirect_target(client, "author") == "https://www.markusdosch.com"
            assert await redirect_target(client, "nonexistent thing") == "https://www.google.com/?q=nonexistent+thing"
            assert await redirect_target(client, "") == "https://www.google.com/?q="
            assert await redirect_target(client, "github pr open issues") == "https://github.com/pulls?q=open+issues"
            assert await redirect_target(client, "gh pull fix") == "https://github.com/pulls?q=fix"
            assert await redirect_target(client, "so") == "https://www.google.com/?q=so"

    @pytest.mark.asyncio
    async def test_missing_q_parameter(self, app):
        async with TestClient(TestServer(app)) as client:
            response = await client.get("/", allow_redirects=False)
            assert response.status == 303
            assert response.headers["Location"] == "https://www.google.com/?q="

    @pytest.mark.asyncio
    async def test_help_page(self, app):
        async with TestClient(TestServer(app)) as client:
            response = await client.get("/", params={"q": "help"})

            assert response.status == 200
            assert response.content_type == "text/html"
            body = await response.text()
            assert "<strong>google</strong> (aliases: g), requires query - Search Google" in body
            assert "<strong>github pr</strong> (aliases: pull)" in body
            assert "<strong>author</strong> - Open the author&#x27;s homepage" in body

    @pytest.mark.asyncio
    async def test_template_error_is_internal_error(self, usage_logger, aggregator):
        registry = CommandRegistry([CommandDefinition(name="broken", url="https://x.test/{{nope}}")])

        async with TestClient(TestServer(create_app(registry, usage_logger, aggregator))) as client:
            response = await client.get("/", params={"q": "broken x"}, allow_redirects=False)

            assert response.status == 500
            assert "Location" not in response.headers
            assert await response.text() == "Internal Server Error"

    @pytest.mark.asyncio
    async def test_usage_recorded_with_client_metadata(self, app, usage_logger, usage_log):
        async with TestClient(TestServer(app)) as client:
            await redirect_target(
                client, "gh pull fix",
                headers={"User-Agent": "pytest-agent", "X-Forwarded-For": "203.0.113.5, 10.0.0.1"}
            )
            await client.get("/", params={"q": "list"})
            await usage_logger.drain()

        events = await UsageLogParser(usage_log).read_events()
        assert [e.command for e in events] == ["github", "help"]
        assert events[0].remote_addr == "203.0.113.5"
        assert events[0].user_agent == "pytest-agent"
        assert events[0].query == "gh pull fix"
        assert events[0].subcommand == "pr"

    @pytest.mark.asyncio
    async def test_peer_address_without_forwarding(self, app, usage_logger, usage_log):
        async with TestClient(TestServer(app)) as client:
            await redirect_target(client, "author")
            await usage_logger.drain()

        events = await UsageLogParser(usage_log).read_events()
        assert events[0].remote_addr == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_pending_records_drained_on_shutdown(self, app, usage_logger, usage_log):
        async with TestClient(TestServer(app)) as client:
            for _ in range(10):
                await redirect_target(client, "author")

        assert usage_logger.pending == 0
        assert len(await UsageLogParser(usage_log).read_events()) == 10


class TestStatsAPI:
    """Test the statistics endpoints."""

    @pytest.fixture
    def traffic(self, write_log, make_event):
        write_log([
            make_event("google", "2024-01-15T09:00:00+00:00", remote_addr="1.1.1.1"),
            make_event("google", "2024-01-15T09:01:00+00:00", remote_addr="1.1.1.1", duration_ms=60000),
            make_event("author", "2024-01-16T09:00:00+00:00", remote_addr="2.2.2.2"),
            "corrupt",
        ])

    @pytest.mark.asyncio
    async def test_day(self, app, traffic):
        async with TestClient(TestServer(app)) as client:
            response = await client.get("/api/stats", params={"date": "2024-01-15"})

            assert response.status == 200
            data = await response.json()
            assert data == {
                "date": "2024-01-15",
                "total_usage": 2,
                "commands": {"google": 2},
                "avg_duration": {"google": 60000.0},
                "total_time_ms": 60000,
                "unique_users": 1,
                "top_commands": [{"command": "google", "count": 2}],
            }

    @pytest.mark.asyncio
    async def test_range(self, app, traffic):
        async with TestClient(TestServer(app)) as client:
            response = await client.get("/api/stats", params={"start": "2024-01-15", "end": "2024-01-16"})

            data = await response.json()
            assert [d["date"] for d in data] == ["2024-01-15", "2024-01-16"]
            assert [d["total_usage"] for d in data] == [2, 1]

    @pytest.mark.asyncio
    async def test_range_summary(self, app, traffic):
        async with TestClient(TestServer(app)) as client:
            response = await client.get(
                "/api/stats", params={"start": "2024-01-15", "end": "2024-01-16", "summary": "1"}
            )

            data = await response.json()
            assert data["date"] == "2024-01-15 to 2024-01-16"
            assert data["total_usage"] == 3
            assert data["unique_users"] == 2

    @pytest.mark.asyncio
    async def test_overall(self, app, traffic):
        async with TestClient(TestServer(app)) as client:
            response = await client.get("/api/stats/overall")

            data = await response.json()
            assert data["date"] == "all-time"
            assert data["total_usage"] == 3

    @pytest.mark.asyncio
    async def test_bad_date(self, app):
        async with TestClient(TestServer(app)) as client:
            response = await client.get("/api/stats", params={"start": "2024-13-01", "end": "2024-01-16"})

            assert response.status == 400
            data = await response.json()
            assert data["error"]["code"] == "DATE_PARSE_ERROR"

    @pytest.mark.asyncio
    async def test_unreadable_log(self, registry, usage_logger, temp_dir):
        aggregator = UsageAggregator(UsageLog(temp_dir))

        async with TestClient(TestServer(create_app(registry, usage_logger, aggregator))) as client:
            response = await client.get("/api/stats/overall")

            assert response.status == 500
            data = await response.json()
            assert data["error"]["code"] == "STORAGE_ERROR"
