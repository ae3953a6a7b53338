"""Rate limiting on money-moving endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from config.settings import settings
from src.bw_gateway.middleware.rate_limit import caller_key, is_limited
from tests.helpers import bearer, new_user_id


class TestIsLimited:
    @pytest.mark.parametrize(
        "path",
        [
            "/api/v1/transfers",
            "/api/v1/transfers/",
            "/api/v1/marketplace/listings/abc/purchase",
            "/api/v1/wallet/top-up",
        ],
    )
    def test_money_posts_limited(self, path: str) -> None:
        assert is_limited("POST", path)

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/api/v1/transfers/my-code"),
            ("GET", "/api/v1/wallet/balance"),
            ("POST", "/api/v1/library/items"),
            ("POST", "/api/v1/marketplace/listings"),
        ],
    )
    def test_other_requests_not_limited(self, method: str, path: str) -> None:
        assert not is_limited(method, path)


class TestCallerKey:
    def _request(self, headers: dict[str, str], host: str = "10.0.0.9") -> MagicMock:
        request = MagicMock()
        request.headers = {k.lower(): v for k, v in headers.items()}
        request.client.host = host
        return request

    def test_bearer_subject(self) -> None:
        user_id = new_user_id()
        request = self._request(bearer(user_id, "+212600000001"))
        assert caller_key(request) == f"user:{user_id}"

    def test_forwarded_for(self) -> None:
        request = self._request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert caller_key(request) == "ip:203.0.113.7"

    def test_socket_address(self) -> None:
        assert caller_key(self._request({})) == "ip:10.0.0.9"

    def test_unparseable_token_falls_back_to_ip(self) -> None:
        request = self._request({"Authorization": "Bearer garbage"})
        assert caller_key(request) == "ip:10.0.0.9"


class TestMiddleware:
    async def test_over_limit_rejected(self, client: AsyncClient, fake_redis: AsyncMock) -> None:
        fake_redis.incr.return_value = settings.RATE_LIMIT_PER_MINUTE + 1
        user_id = new_user_id()

        resp = await client.post(
            "/api/v1/transfers",
            json={"amount": "1.00", "phone": "+212600000002"},
            headers=bearer(user_id, "+212600000001"),
        )

        assert resp.status_code == 429
        assert int(resp.headers["Retry-After"]) > 0
        assert resp.json()["code"] == 9001
        assert resp.json()["data"] is None

    async def test_first_hit_sets_window_expiry(
        self, client: AsyncClient, fake_redis: AsyncMock
    ) -> None:
        user_id = new_user_id()
        await client.post(
            "/api/v1/transfers",
            json={"amount": "1.00", "phone": "+212600000002"},
            headers=bearer(user_id, "+212600000001"),
        )
        fake_redis.expire.assert_awaited_once()
        key = fake_redis.incr.await_args.args[0]
        assert key.startswith(f"ratelimit:user:{user_id}:")

    async def test_redis_down_fails_open(self, client: AsyncClient, fake_redis: AsyncMock) -> None:
        fake_redis.incr.side_effect = RedisConnectionError("down")
        user_id = new_user_id()

        resp = await client.post(
            "/api/v1/transfers",
            json={"amount": "1.00", "phone": "+212600000002"},
            headers=bearer(user_id, "+212600000001"),
        )

        # Reaches the handler: the recipient does not exist
        assert resp.status_code == 404

    async def test_reads_not_counted(self, client: AsyncClient, fake_redis: AsyncMock) -> None:
        await client.get(
            "/api/v1/wallet/balance", headers=bearer(new_user_id(), "+212600000001")
        )
        fake_redis.incr.assert_not_awaited()
