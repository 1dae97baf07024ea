from datetime import timedelta

import pytest

from buildersapi.core.exceptions import (
    BusinessLogicError,
    InsufficientBalanceError,
    InvalidAmountError,
    NotFoundError,
)
from buildersapi.models.listing import ForecastPosition, ForecastTarget, ListingStatus
from buildersapi.models.tokens import TokenTransactionType
from buildersapi.repositories.listing_repository import ForecastRepository
from buildersapi.schemas.listing import ForecastCreateRequest
from buildersapi.schemas.redemption import RedeemableKind
from buildersapi.services.forecast_service import ForecastService
from buildersapi.services.token_service import TokenService


@pytest.fixture
def forecast_service(db_session, settings):
    return ForecastService(db_session, settings)


@pytest.fixture
def token_service(db_session, settings):
    return TokenService(db_session, settings)


@pytest.fixture
def founder_target(make_user, make_target):
    founder = make_user(nickname="founder")
    return founder, make_target(founder)


def _request(target_id, coins=25, position=ForecastPosition.LONG, mrr=100_000):
    return ForecastCreateRequest(
        target_id=target_id, position=position, target_mrr=mrr, coins_staked=coins
    )


class TestPlaceForecast:
    """예측 생성 + 스테이크 테스트"""

    def test_place_stakes_tokens(
        self, forecast_service, token_service, founder_target, make_user, settings
    ):
        # Given
        _, target_id = founder_target
        user_id = make_user()
        token_service.credit(user_id, 100, TokenTransactionType.PURCHASE)

        # When
        result = forecast_service.place(user_id, _request(target_id, coins=25))

        # Then
        assert result.kind == RedeemableKind.FORECAST
        assert result.status == ListingStatus.ACTIVE
        assert result.tokens_spent == 25
        assert result.new_balance == 75
        assert result.end_date - result.start_date == timedelta(
            days=settings.FORECAST_DURATION_DAYS
        )

        entry = token_service.get_transactions(user_id).transactions[0]
        assert entry.type == TokenTransactionType.FORECAST_PLACED
        assert entry.amount == -25
        assert entry.description == "Placed LONG forecast: LONG $1,000.00 MRR"
        assert entry.metadata["target_id"] == target_id
        assert entry.metadata["position"] == "LONG"

    def test_place_with_insufficient_balance_keeps_no_draft(
        self, forecast_service, token_service, founder_target, make_user, db_session
    ):
        _, target_id = founder_target
        user_id = make_user()
        token_service.credit(user_id, 5, TokenTransactionType.PURCHASE)

        with pytest.raises(InsufficientBalanceError):
            forecast_service.place(user_id, _request(target_id, coins=25))

        assert ForecastRepository(db_session).count({"user_id": user_id}) == 0
        assert token_service.get_balance(user_id) == 5

    def test_draft_then_redeem(
        self, forecast_service, token_service, founder_target, make_user
    ):
        _, target_id = founder_target
        user_id = make_user()
        token_service.credit(user_id, 100, TokenTransactionType.PURCHASE)

        draft = forecast_service.create_draft(
            user_id, _request(target_id, coins=40, position=ForecastPosition.SHORT)
        )
        assert draft.status == ListingStatus.DRAFT
        assert draft.title == "SHORT $1,000.00 MRR"
        assert token_service.get_balance(user_id) == 100

        result = forecast_service.redemption_service.activate_with_tokens(
            RedeemableKind.FORECAST, draft.id, user_id
        )

        assert result.tokens_spent == 40
        assert token_service.get_balance(user_id) == 60

    @pytest.mark.parametrize(
        "change, error",
        [
            ({"is_active": False}, BusinessLogicError),
            ({"max_stake": 30}, InvalidAmountError),
        ],
    )
    def test_redeem_rechecks_target_after_draft(
        self,
        forecast_service,
        token_service,
        founder_target,
        make_user,
        db_session,
        change,
        error,
    ):
        # Given: 초안 작성 후 대상이 비활성화되거나 최대 스테이크가 낮아짐
        _, target_id = founder_target
        user_id = make_user()
        token_service.credit(user_id, 100, TokenTransactionType.PURCHASE)
        draft = forecast_service.create_draft(user_id, _request(target_id, coins=40))

        target = db_session.get(ForecastTarget, target_id)
        for key, value in change.items():
            setattr(target, key, value)
        db_session.commit()

        # When / Then
        with pytest.raises(error):
            forecast_service.redemption_service.activate_with_tokens(
                RedeemableKind.FORECAST, draft.id, user_id
            )

        assert token_service.get_balance(user_id) == 100
        stored = ForecastRepository(db_session).get_by_id(draft.id)
        assert stored.status == ListingStatus.DRAFT


class TestForecastValidation:
    """예측 생성 검증 테스트"""

    def test_missing_target(self, forecast_service, make_user):
        user_id = make_user()

        with pytest.raises(NotFoundError):
            forecast_service.create_draft(user_id, _request(9999))

    def test_inactive_target(self, forecast_service, make_user, make_target):
        founder = make_user()
        target_id = make_target(founder, is_active=False)

        with pytest.raises(BusinessLogicError) as exc_info:
            forecast_service.create_draft(make_user(), _request(target_id))

        assert exc_info.value.error_code == "FORECAST_TARGET_INACTIVE"

    def test_cannot_forecast_own_company(self, forecast_service, founder_target):
        founder, target_id = founder_target

        with pytest.raises(BusinessLogicError) as exc_info:
            forecast_service.create_draft(founder, _request(target_id))

        assert exc_info.value.error_code == "FORECAST_SELF"

    def test_invalid_position(self, forecast_service, founder_target, make_user):
        _, target_id = founder_target
        request = ForecastCreateRequest.model_construct(
            target_id=target_id, position="SIDEWAYS", target_mrr=1, coins_staked=25
        )

        with pytest.raises(BusinessLogicError) as exc_info:
            forecast_service.create_draft(make_user(), request)

        assert exc_info.value.error_code == "FORECAST_POSITION"

    @pytest.mark.parametrize("coins", [5, 150])
    def test_stake_outside_global_limits(
        self, forecast_service, founder_target, make_user, coins
    ):
        _, target_id = founder_target

        with pytest.raises(InvalidAmountError):
            forecast_service.create_draft(make_user(), _request(target_id, coins=coins))

    @pytest.mark.parametrize("coins", [15, 60])
    def test_stake_outside_target_limits(
        self, forecast_service, make_user, make_target, coins
    ):
        target_id = make_target(make_user(), min_stake=20, max_stake=50)

        with pytest.raises(InvalidAmountError) as exc_info:
            forecast_service.create_draft(make_user(), _request(target_id, coins=coins))

        assert "between 20 and 50" in exc_info.value.message

    def test_one_open_forecast_per_target(
        self, forecast_service, founder_target, make_user
    ):
        _, target_id = founder_target
        user_id = make_user()
        forecast_service.create_draft(user_id, _request(target_id))

        with pytest.raises(BusinessLogicError) as exc_info:
            forecast_service.create_draft(user_id, _request(target_id))

        assert exc_info.value.error_code == "FORECAST_EXISTS"
