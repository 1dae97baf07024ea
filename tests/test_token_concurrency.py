import threading

from buildersapi.core.exceptions import InsufficientBalanceError
from buildersapi.models.tokens import TokenTransactionType
from buildersapi.services.token_service import TokenService

WORKERS = 5


def _run_concurrently(session_factory, settings, work):
    """스레드마다 별도 세션으로 work(service) 실행, (성공 수, 잔액 부족 수, 기타 오류) 반환"""
    barrier = threading.Barrier(WORKERS)
    lock = threading.Lock()
    outcome = {"ok": 0, "insufficient": 0, "errors": []}

    def _worker():
        session = session_factory()
        try:
            service = TokenService(session, settings)
            barrier.wait()
            try:
                work(service)
            except InsufficientBalanceError:
                with lock:
                    outcome["insufficient"] += 1
            except Exception as e:  # noqa: BLE001
                with lock:
                    outcome["errors"].append(e)
            else:
                with lock:
                    outcome["ok"] += 1
        finally:
            session.close()

    threads = [threading.Thread(target=_worker) for _ in range(WORKERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    return outcome


class TestConcurrentLedger:
    """동시 요청에서의 원장 불변식 테스트"""

    def test_only_one_full_balance_spend_succeeds(
        self, session_factory, db_session, settings, make_user
    ):
        # Given: 잔액 100
        user_id = make_user()
        service = TokenService(db_session, settings)
        service.credit(user_id, 100, TokenTransactionType.PURCHASE)

        # When: 5개 요청이 동시에 100 차감
        outcome = _run_concurrently(
            session_factory,
            settings,
            lambda s: s.spend(user_id, 100, TokenTransactionType.AD_REDEMPTION),
        )

        # Then
        assert outcome["errors"] == []
        assert outcome["ok"] == 1
        assert outcome["insufficient"] == WORKERS - 1
        assert service.get_balance(user_id) == 0
        history = service.get_transactions(user_id)
        assert [t.amount for t in history.transactions] == [-100, 100]
        assert service.verify_user_integrity(user_id).status == "OK"

    def test_concurrent_credits_all_apply(
        self, session_factory, db_session, settings, make_user
    ):
        user_id = make_user()

        outcome = _run_concurrently(
            session_factory,
            settings,
            lambda s: s.credit(user_id, 10, TokenTransactionType.PURCHASE),
        )

        service = TokenService(db_session, settings)
        assert outcome["errors"] == []
        assert outcome["ok"] == WORKERS
        assert service.get_balance(user_id) == 10 * WORKERS
        assert service.verify_user_integrity(user_id).status == "OK"

    def test_concurrent_duplicate_key_credits_once(
        self, session_factory, db_session, settings, make_user
    ):
        user_id = make_user()

        outcome = _run_concurrently(
            session_factory,
            settings,
            lambda s: s.credit(
                user_id,
                10,
                TokenTransactionType.PURCHASE,
                idempotency_key="checkout-42",
            ),
        )

        service = TokenService(db_session, settings)
        assert outcome["errors"] == []
        assert outcome["ok"] == WORKERS
        assert service.get_balance(user_id) == 10
        assert service.get_transactions(user_id).total_count == 1
