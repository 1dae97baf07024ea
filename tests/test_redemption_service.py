from datetime import timedelta
from unittest.mock import patch

import pytest

from buildersapi.core.exceptions import (
    AuthorizationError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
)
from buildersapi.models.listing import ListingStatus
from buildersapi.models.tokens import TokenTransactionType
from buildersapi.repositories.listing_repository import ServiceListingRepository
from buildersapi.schemas.listing import (
    AdvertisementCreateRequest,
    ServiceListingCreateRequest,
)
from buildersapi.schemas.redemption import RedeemableKind
from buildersapi.services.listing_service import ListingService
from buildersapi.services.redemption_service import RedemptionService
from buildersapi.services.token_service import TokenService


@pytest.fixture
def token_service(db_session, settings):
    return TokenService(db_session, settings)


@pytest.fixture
def redemption_service(db_session, settings):
    return RedemptionService(db_session, settings)


@pytest.fixture
def listing_service(db_session, settings):
    return ListingService(db_session, settings)


@pytest.fixture
def service_repo(db_session):
    return ServiceListingRepository(db_session)


def _create_service_listing(listing_service, user_id):
    return listing_service.create_service_listing(
        user_id,
        ServiceListingCreateRequest(
            title="MVP in a weekend", category="development", price_cents=50_000
        ),
    )


class TestServiceListingRedemption:
    """서비스 리스팅 토큰 활성화 테스트"""

    def test_activation_spends_and_activates(
        self, redemption_service, listing_service, token_service, service_repo, make_user, settings
    ):
        # Given
        user_id = make_user()
        token_service.credit(user_id, 100, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)

        # When
        result = redemption_service.activate_with_tokens(
            RedeemableKind.SERVICE_LISTING, listing.id, user_id
        )

        # Then
        assert result.success is True
        assert result.status == ListingStatus.ACTIVE
        assert result.tokens_spent == settings.SERVICE_REDEMPTION_COST
        assert result.new_balance == 50
        assert result.end_date - result.start_date == timedelta(
            days=settings.SERVICE_LISTING_DURATION_DAYS
        )

        stored = service_repo.get_by_id(listing.id)
        assert stored.status == ListingStatus.ACTIVE
        assert stored.amount_paid_tokens == 50

        entry = token_service.get_transactions(user_id).transactions[0]
        assert entry.id == result.transaction_id
        assert entry.type == TokenTransactionType.SERVICE_REDEMPTION
        assert entry.amount == -50
        assert entry.description == "Unlocked service listing: MVP in a weekend"
        assert entry.metadata == {
            "entity_id": listing.id,
            "kind": "service_listing",
            "title": "MVP in a weekend",
        }

    def test_pending_payment_listing_can_be_redeemed(
        self, redemption_service, listing_service, token_service, service_repo, make_user
    ):
        user_id = make_user()
        token_service.credit(user_id, 100, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)
        service_repo.update(
            listing.id,
            status=ListingStatus.PENDING_PAYMENT,
            stripe_session_id="cs_test_abc",
        )

        redemption_service.activate_with_tokens(
            RedeemableKind.SERVICE_LISTING, listing.id, user_id
        )

        stored = service_repo.get_by_id(listing.id)
        assert stored.status == ListingStatus.ACTIVE
        assert stored.stripe_session_id is None

    def test_already_active_is_rejected(
        self, redemption_service, listing_service, token_service, make_user
    ):
        user_id = make_user()
        token_service.credit(user_id, 200, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)
        redemption_service.activate_with_tokens(
            RedeemableKind.SERVICE_LISTING, listing.id, user_id
        )

        with pytest.raises(InvalidStateError) as exc_info:
            redemption_service.activate_with_tokens(
                RedeemableKind.SERVICE_LISTING, listing.id, user_id
            )

        assert "already active" in exc_info.value.message
        assert token_service.get_balance(user_id) == 150

    def test_expired_is_rejected(
        self, redemption_service, listing_service, token_service, service_repo, make_user
    ):
        user_id = make_user()
        token_service.credit(user_id, 100, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)
        service_repo.update(listing.id, status=ListingStatus.EXPIRED)

        with pytest.raises(InvalidStateError) as exc_info:
            redemption_service.activate_with_tokens(
                RedeemableKind.SERVICE_LISTING, listing.id, user_id
            )

        assert "expired" in exc_info.value.message
        assert token_service.get_balance(user_id) == 100

    def test_insufficient_balance_leaves_draft(
        self, redemption_service, listing_service, token_service, service_repo, make_user
    ):
        user_id = make_user()
        token_service.credit(user_id, 10, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            redemption_service.activate_with_tokens(
                RedeemableKind.SERVICE_LISTING, listing.id, user_id
            )

        assert exc_info.value.required == 50
        assert exc_info.value.balance == 10
        assert service_repo.get_by_id(listing.id).status == ListingStatus.DRAFT
        assert token_service.get_transactions(user_id).total_count == 1

    def test_not_owner_is_forbidden(
        self, redemption_service, listing_service, token_service, make_user
    ):
        owner = make_user()
        intruder = make_user()
        token_service.credit(intruder, 100, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, owner)

        with pytest.raises(AuthorizationError):
            redemption_service.activate_with_tokens(
                RedeemableKind.SERVICE_LISTING, listing.id, intruder
            )

        assert token_service.get_balance(intruder) == 100

    def test_missing_listing(self, redemption_service, make_user):
        user_id = make_user()

        with pytest.raises(NotFoundError):
            redemption_service.activate_with_tokens(
                RedeemableKind.SERVICE_LISTING, 9999, user_id
            )


class TestRedemptionAtomicity:
    """활성화 실패 시 토큰 차감이 남지 않는지 테스트"""

    def test_failed_transition_rolls_back_spend(
        self, redemption_service, listing_service, token_service, service_repo, make_user
    ):
        # Given
        user_id = make_user()
        token_service.credit(user_id, 100, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)

        # When: 토큰 차감 후 상태 전환 단계에서 저장소 오류
        with patch.object(
            ServiceListingRepository,
            "activate",
            side_effect=RuntimeError("connection reset"),
        ):
            with pytest.raises(RuntimeError):
                redemption_service.activate_with_tokens(
                    RedeemableKind.SERVICE_LISTING, listing.id, user_id
                )

        # Then
        assert token_service.get_balance(user_id) == 100
        assert token_service.get_transactions(user_id).total_count == 1
        assert service_repo.get_by_id(listing.id).status == ListingStatus.DRAFT
        assert token_service.verify_user_integrity(user_id).status == "OK"

    def test_lost_activation_race_rolls_back_spend(
        self, redemption_service, listing_service, token_service, make_user
    ):
        user_id = make_user()
        token_service.credit(user_id, 100, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)

        # 다른 요청이 먼저 활성화해 조건부 UPDATE 가 0행인 상황
        with patch.object(ServiceListingRepository, "activate", return_value=None):
            with pytest.raises(InvalidStateError):
                redemption_service.activate_with_tokens(
                    RedeemableKind.SERVICE_LISTING, listing.id, user_id
                )

        assert token_service.get_balance(user_id) == 100
        assert token_service.get_transactions(user_id).total_count == 1


class TestRedemptionQuote:
    """토큰 교환 가능 여부 조회 테스트"""

    def test_quote_with_enough_balance(
        self, redemption_service, listing_service, token_service, make_user
    ):
        user_id = make_user()
        token_service.credit(user_id, 60, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)

        quote = redemption_service.get_redemption_quote(
            RedeemableKind.SERVICE_LISTING, listing.id, user_id
        )

        assert quote.can_redeem is True
        assert quote.cost == 50
        assert quote.balance == 60
        assert quote.status == ListingStatus.DRAFT
        # 조회는 잔액을 바꾸지 않음
        assert token_service.get_balance(user_id) == 60

    def test_quote_for_active_listing(
        self, redemption_service, listing_service, token_service, make_user
    ):
        user_id = make_user()
        token_service.credit(user_id, 500, TokenTransactionType.PURCHASE)
        listing = _create_service_listing(listing_service, user_id)
        redemption_service.activate_with_tokens(
            RedeemableKind.SERVICE_LISTING, listing.id, user_id
        )

        quote = redemption_service.get_redemption_quote(
            RedeemableKind.SERVICE_LISTING, listing.id, user_id
        )

        assert quote.can_redeem is False
        assert quote.status == ListingStatus.ACTIVE

    def test_ad_quote_uses_current_tier_price(
        self, redemption_service, listing_service, make_user
    ):
        user_id = make_user()
        ad = listing_service.create_advertisement(
            user_id, AdvertisementCreateRequest(title="Ship faster")
        )

        quote = redemption_service.get_redemption_quote(
            RedeemableKind.ADVERTISEMENT, ad.id, user_id
        )

        # tier 0 = $5 = 50 tokens
        assert quote.cost == 50
        assert quote.can_redeem is False
