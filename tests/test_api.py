"""Tests for the HTTP routes and error mapping."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from pricewatch.api.app import create_app
from pricewatch.exceptions import InvalidArgument, PersistenceError, UpstreamError
from pricewatch.models import AlertRule, HourBucket, SwapQuote
from pricewatch.query import QueryService
from pricewatch.scheduler import Scheduler


@pytest.fixture
def mock_query_service() -> AsyncMock:
    return AsyncMock(spec=QueryService)


@pytest.fixture
def client(mock_query_service: AsyncMock) -> TestClient:
    app = create_app()
    app.state.query_service = mock_query_service
    return TestClient(app)


class TestHourlyRoute:
    def test_returns_buckets_with_decimal_strings(
        self, client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        mock_query_service.get_hourly_prices.return_value = [
            HourBucket("14 hour", Decimal("3005.5"), Decimal("3000"), Decimal("3011"))
        ]

        response = client.get("/price/hourly", params={"asset_symbol": "ETH"})

        assert response.status_code == 200
        assert response.json() == [
            {
                "hour": "14 hour",
                "average_price": "3005.5",
                "min_price": "3000",
                "max_price": "3011",
            }
        ]
        mock_query_service.get_hourly_prices.assert_awaited_once_with("ETH")

    def test_empty_window(self, client: TestClient, mock_query_service: AsyncMock) -> None:
        mock_query_service.get_hourly_prices.return_value = []

        response = client.get("/price/hourly", params={"asset_symbol": "POL"})

        assert response.status_code == 200
        assert response.json() == []

    def test_missing_symbol_is_422(self, client: TestClient) -> None:
        assert client.get("/price/hourly").status_code == 422

    def test_persistence_error_is_503(
        self, client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        mock_query_service.get_hourly_prices.side_effect = PersistenceError("locked")

        response = client.get("/price/hourly", params={"asset_symbol": "ETH"})

        assert response.status_code == 503
        assert response.json()["error"] == "storage_unavailable"


class TestAlertRoute:
    def test_created(self, client: TestClient, mock_query_service: AsyncMock) -> None:
        mock_query_service.set_alert.return_value = AlertRule(
            "ETH", Decimal("3000"), "user@example.com", 0, id=3
        )

        response = client.post(
            "/price/alert",
            json={"asset_symbol": "ETH", "target_price": 3000, "email": "user@example.com"},
        )

        assert response.status_code == 201
        assert response.json() == {"message": "success", "id": 3}
        mock_query_service.set_alert.assert_awaited_once_with(
            "ETH", Decimal("3000"), "user@example.com"
        )

    def test_invalid_argument_is_400(
        self, client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        mock_query_service.set_alert.side_effect = InvalidArgument("target_price must be positive")

        response = client.post(
            "/price/alert",
            json={"asset_symbol": "ETH", "target_price": -5, "email": "a@b.com"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_argument"


class TestSwapRoute:
    def test_quote(self, client: TestClient, mock_query_service: AsyncMock) -> None:
        mock_query_service.get_swap_rate.return_value = SwapQuote(
            output_amount=Decimal("0.485"),
            fee_in_source_asset=Decimal("0.3"),
            fee_in_usd=Decimal("900"),
        )

        response = client.get("/price/swap", params={"source_amount": "10"})

        assert response.status_code == 200
        assert response.json() == {
            "output_amount": "0.485",
            "fee_in_source_asset": "0.3",
            "fee_in_usd": "900",
        }
        mock_query_service.get_swap_rate.assert_awaited_once_with(Decimal("10"))

    def test_upstream_error_is_502(
        self, client: TestClient, mock_query_service: AsyncMock
    ) -> None:
        mock_query_service.get_swap_rate.side_effect = UpstreamError("exchange down")

        response = client.get("/price/swap", params={"source_amount": "10"})

        assert response.status_code == 502


class TestStatusRoute:
    def test_without_scheduler(self, client: TestClient) -> None:
        assert client.get("/status").json() == {"running": False}

    def test_with_scheduler(self, client: TestClient) -> None:
        scheduler = MagicMock(spec=Scheduler)
        scheduler.get_status.return_value = {"running": True, "cycle_count": 4}
        client.app.state.scheduler = scheduler

        assert client.get("/status").json() == {"running": True, "cycle_count": 4}


class TestIndexRoute:
    def test_banner(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == "Price Watch API"
