# tests/routers/test_portfolios_api.py
"""
Integration tests for Portfolio API endpoints.

These tests verify full HTTP request/response cycles for:
- GET/POST /portfolios
- GET/PATCH/DELETE /portfolios/{id}
- GET/POST /portfolios/{id}/assets
- POST /portfolios/{id}/update-prices
- GET /portfolios/{id}/analytics

Decimal fields are asserted as strings, which is how they go over the wire.
"""

import pytest
from fastapi.testclient import TestClient


def create_portfolio(client: TestClient, name: str = "Test", owner: str | None = None) -> dict:
    headers = {"X-Owner-Id": owner} if owner else {}
    response = client.post("/portfolios", json={"name": name}, headers=headers)
    assert response.status_code == 201
    return response.json()


def add_asset(client: TestClient, portfolio_id: str, **overrides) -> dict:
    body = {
        "symbol": "BTC",
        "name": "Bitcoin",
        "type": "crypto",
        "quantity": "2",
        "purchase_price": "30000",
        **overrides,
    }
    response = client.post(f"/portfolios/{portfolio_id}/assets", json=body)
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# PORTFOLIO CRUD
# =============================================================================

class TestPortfolioCrud:
    """Tests for portfolio CRUD endpoints."""

    def test_list_provisions_default(self, client):
        response = client.get("/portfolios", headers={"X-Owner-Id": "alice"})

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["name"] == "My Portfolio"
        assert data[0]["owner_id"] == "alice"
        assert data[0]["total_value"] == "0.00"
        assert data[0]["total_gain_loss_percent"] == "0.0000"

    def test_anonymous_owner_is_guest(self, client):
        portfolio = create_portfolio(client)

        assert portfolio["owner_id"] == "guest"

    def test_create_and_get(self, client):
        created = client.post("/portfolios", json={"name": "  Crypto ", "description": "Coins"}).json()

        response = client.get(f"/portfolios/{created['id']}")

        assert response.status_code == 200
        assert response.json()["name"] == "Crypto"
        assert response.json()["description"] == "Coins"

    def test_create_blank_name_is_422(self, client):
        response = client.post("/portfolios", json={"name": "   "})

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_patch_only_sent_fields(self, client):
        portfolio = client.post("/portfolios", json={"name": "Old", "description": "keep"}).json()

        response = client.patch(f"/portfolios/{portfolio['id']}", json={"name": "New"})

        assert response.status_code == 200
        assert response.json()["name"] == "New"
        assert response.json()["description"] == "keep"

    def test_get_missing_is_404(self, client):
        response = client.get("/portfolios/does-not-exist")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "PortfolioNotFoundError"
        assert body["details"]["resource_id"] == "does-not-exist"

    def test_delete_cascades(self, client, price_provider):
        price_provider.set_quote("BTC", "100")
        portfolio = create_portfolio(client)
        asset = add_asset(client, portfolio["id"])

        response = client.delete(f"/portfolios/{portfolio['id']}")

        assert response.status_code == 204
        assert client.get(f"/portfolios/{portfolio['id']}").status_code == 404
        assert client.get(f"/assets/{asset['id']}").status_code == 404

    def test_delete_missing_is_404(self, client):
        assert client.delete("/portfolios/missing").status_code == 404


# =============================================================================
# ASSETS IN A PORTFOLIO
# =============================================================================

class TestPortfolioAssets:
    """Tests for creating and listing assets."""

    def test_create_values_asset_and_portfolio(self, client, price_provider):
        price_provider.set_quote("BTC", "67842.30", "1547", "2.34")
        portfolio = create_portfolio(client)

        asset = add_asset(client, portfolio["id"], symbol="btc")

        assert asset["symbol"] == "BTC"
        assert asset["type"] == "crypto"
        assert asset["quantity"] == "2.00000000"
        assert asset["current_price"] == "67842.30000000"
        assert asset["total_value"] == "135684.60"
        assert asset["gain_loss"] == "75684.60"
        assert asset["gain_loss_percent"] == "126.1410"
        assert asset["daily_change"] == "1547.00"
        assert asset["metadata"] == {"icon": "bitcoin"}

        refreshed = client.get(f"/portfolios/{portfolio['id']}").json()
        assert refreshed["total_value"] == "135684.60"
        assert refreshed["total_gain_loss"] == "75684.60"

    def test_list_assets_by_value(self, client, price_provider):
        price_provider.set_quote("BTC", "100")
        price_provider.set_quote("ETH", "10")
        portfolio = create_portfolio(client)
        add_asset(client, portfolio["id"], symbol="ETH", name="Ethereum")
        add_asset(client, portfolio["id"], symbol="BTC")

        response = client.get(f"/portfolios/{portfolio['id']}/assets")

        assert response.status_code == 200
        assert [a["symbol"] for a in response.json()] == ["BTC", "ETH"]

    @pytest.mark.parametrize("overrides", [
        {"quantity": "0"},
        {"quantity": "-1"},
        {"purchase_price": "-5"},
        {"type": "bond"},
        {"symbol": "BAD SYMBOL"},
        {"name": ""},
        {"quantity": "100000000000000000000"},
        {"quantity": "0.000000001"},
        {"purchase_price": "12345678901"},
    ])
    def test_invalid_input_is_422(self, client, overrides):
        portfolio = create_portfolio(client)
        body = {
            "symbol": "BTC", "name": "Bitcoin", "type": "crypto",
            "quantity": "1", "purchase_price": "1", **overrides,
        }

        response = client.post(f"/portfolios/{portfolio['id']}/assets", json=body)

        assert response.status_code == 422

    def test_create_in_missing_portfolio_is_404(self, client):
        response = client.post("/portfolios/missing/assets", json={
            "symbol": "BTC", "name": "Bitcoin", "type": "crypto",
            "quantity": "1", "purchase_price": "1",
        })

        assert response.status_code == 404

    def test_unpriced_asset_is_stored(self, client):
        portfolio = create_portfolio(client)

        asset = add_asset(client, portfolio["id"], symbol="NEWCOIN", name="New Coin")

        assert asset["total_value"] == "0.00"
        assert asset["current_price"] == "0.00000000"


# =============================================================================
# REFRESH & ANALYTICS
# =============================================================================

class TestRefreshAndAnalytics:
    """Tests for update-prices and analytics."""

    def test_update_prices_partial_failure(self, client, price_provider):
        portfolio = create_portfolio(client)
        for symbol, price in (("BTC", "100"), ("ETH", "50"), ("SOL", "10")):
            price_provider.set_quote(symbol, price)
            add_asset(client, portfolio["id"], symbol=symbol, name=symbol, quantity="1", purchase_price=price)
        price_provider.set_quote("BTC", "110", source="fallback")
        price_provider.set_failing("ETH")

        response = client.post(f"/portfolios/{portfolio['id']}/update-prices")

        assert response.status_code == 200
        data = response.json()
        assert data["updated"] == ["BTC", "SOL"]
        assert data["unchanged"] == ["ETH"]
        assert data["fallback_symbols"] == ["BTC"]
        assert data["totals"]["total_value"] == "170.00"
        assert data["totals"]["total_gain_loss"] == "10.00"
        assert data["totals"]["total_assets"] == 3

    def test_update_prices_missing_portfolio(self, client):
        assert client.post("/portfolios/missing/update-prices").status_code == 404

    def test_analytics(self, client, price_provider):
        price_provider.set_quote("BTC", "600", "10", "2")
        price_provider.set_quote("AAPL", "200", "-3", "-1.5")
        portfolio = create_portfolio(client)
        add_asset(client, portfolio["id"], symbol="BTC", quantity="1", purchase_price="500")
        add_asset(client, portfolio["id"], symbol="AAPL", name="Apple", type="stock",
                  quantity="2", purchase_price="200")

        response = client.get(f"/portfolios/{portfolio['id']}/analytics")

        assert response.status_code == 200
        data = response.json()
        assert data["totals"]["total_value"] == "1000.00"
        assert data["totals"]["total_cost"] == "900.00"
        assert data["totals"]["total_gain_loss_percent"] == "11.1111"
        assert data["allocation"]["crypto"] == {"value": "600.00", "percentage": "60.0000", "count": 1}
        assert data["allocation"]["stock"]["percentage"] == "40.0000"
        assert data["best_performer"]["symbol"] == "BTC"
        assert data["best_performer"]["change"] == "2.0000"
        assert data["worst_performer"]["symbol"] == "AAPL"

    def test_analytics_missing_portfolio(self, client):
        assert client.get("/portfolios/missing/analytics").status_code == 404
