from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from buildersapi.config import settings
from buildersapi.core.exceptions import InsufficientBalanceError
from buildersapi.models.tokens import TokenTransactionType
from buildersapi.schemas.tokens import (
    AffordabilityResponse,
    GiftTokensResponse,
    TokenBalanceResponse,
    TokenTransactionEntry,
    TokenTransactionHistoryResponse,
)


@pytest.fixture
def token_service(app):
    service = Mock()
    with app.container.services.token_service.override(service):
        yield service


class TestTokenRoutes:
    """토큰 라우터 테스트"""

    def test_requires_authentication(self, client):
        response = client.get("/api/v1/tokens/balance")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["message"] == "Authentication required"

    def test_get_my_balance(self, client, login_as, regular_user, token_service):
        # Given
        login_as(regular_user)
        token_service.get_balance_response.return_value = TokenBalanceResponse(
            balance=120, dollar_value=12.0
        )

        # When
        response = client.get("/api/v1/tokens/balance")

        # Then
        assert response.status_code == 200
        assert response.json() == {"balance": 120, "dollar_value": 12.0}
        token_service.get_balance_response.assert_called_once_with(regular_user.id)

    def test_get_my_transactions(self, client, login_as, regular_user, token_service):
        login_as(regular_user)
        token_service.get_transactions.return_value = TokenTransactionHistoryResponse(
            balance=70,
            transactions=[
                TokenTransactionEntry(
                    id=2,
                    user_id=regular_user.id,
                    amount=-30,
                    type=TokenTransactionType.AD_REDEMPTION,
                    description="Unlocked advertisement: Ship faster",
                    metadata={"entity_id": 5},
                    balance_after=70,
                    created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
                )
            ],
            total_count=2,
            has_next=True,
        )

        response = client.get("/api/v1/tokens/transactions?limit=1&offset=0")

        assert response.status_code == 200
        data = response.json()
        assert data["transactions"][0]["amount"] == -30
        assert data["transactions"][0]["metadata"] == {"entity_id": 5}
        assert data["has_next"] is True
        token_service.get_transactions.assert_called_once_with(
            regular_user.id, limit=1, offset=0
        )

    def test_transactions_limit_validation(self, client, login_as, regular_user, token_service):
        login_as(regular_user)

        response = client.get("/api/v1/tokens/transactions?limit=1000")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"
        token_service.get_transactions.assert_not_called()

    def test_check_affordability(self, client, login_as, regular_user, token_service):
        login_as(regular_user)
        token_service.check_affordability.return_value = AffordabilityResponse(
            user_id=regular_user.id,
            amount=50,
            can_afford=False,
            current_balance=20,
            shortfall=30,
        )

        response = client.get("/api/v1/tokens/affordability/50")

        assert response.status_code == 200
        assert response.json()["shortfall"] == 30
        token_service.check_affordability.assert_called_once_with(regular_user.id, 50)


class TestGiftRoute:
    """토큰 선물 라우터 테스트"""

    def test_gift_tokens(self, client, login_as, regular_user, token_service):
        login_as(regular_user)
        token_service.gift_tokens.return_value = GiftTokensResponse(
            message="Successfully gifted 25 tokens to bob",
            tokens_gifted=25,
            new_balance=75,
            sender_transaction_id=10,
            recipient_transaction_id=11,
        )

        response = client.post(
            "/api/v1/tokens/gift", json={"recipient_id": 2, "amount": 25}
        )

        assert response.status_code == 200
        assert response.json()["new_balance"] == 75
        token_service.gift_tokens.assert_called_once_with(
            sender_id=regular_user.id, recipient_id=2, amount=25
        )

    def test_gift_insufficient_balance(self, client, login_as, regular_user, token_service):
        login_as(regular_user)
        token_service.gift_tokens.side_effect = InsufficientBalanceError(
            required=25, balance=10
        )

        response = client.post(
            "/api/v1/tokens/gift", json={"recipient_id": 2, "amount": 25}
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "BALANCE_001"
        assert error["details"] == {"required": 25, "balance": 10, "shortfall": 15}

    def test_gift_rejects_non_positive_amount(self, client, login_as, regular_user, token_service):
        login_as(regular_user)

        response = client.post(
            "/api/v1/tokens/gift", json={"recipient_id": 2, "amount": 0}
        )

        assert response.status_code == 422
        token_service.gift_tokens.assert_not_called()

    def test_gift_is_rate_limited(self, client, login_as, regular_user, token_service):
        login_as(regular_user)
        token_service.gift_tokens.return_value = GiftTokensResponse(
            message="ok",
            tokens_gifted=1,
            new_balance=0,
            sender_transaction_id=1,
            recipient_transaction_id=2,
        )
        payload = {"recipient_id": 2, "amount": 1}

        for _ in range(settings.RATE_LIMIT_GIFT_PER_HOUR):
            assert client.post("/api/v1/tokens/gift", json=payload).status_code == 200
        response = client.post("/api/v1/tokens/gift", json=payload)

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMIT_001"
        assert int(response.headers["Retry-After"]) > 0

    def test_unexpected_error_returns_500(self, app, login_as, regular_user, token_service):
        login_as(regular_user)
        token_service.get_balance_response.side_effect = RuntimeError("db down")
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/v1/tokens/balance")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_001"
