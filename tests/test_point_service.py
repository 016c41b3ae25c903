from datetime import timedelta
from unittest.mock import patch

import pytest

from socialapi.core.exceptions import NotFoundError, ValidationError
from socialapi.core.point_actions import PointActionType
from socialapi.models.points import PointTransaction
from socialapi.schemas.points import AdminPointsAdjustmentRequest, AwardStatus
from socialapi.services.point_service import PointService
from socialapi.utils.date_utils import utc_today


@pytest.fixture
def point_service(db_session, test_settings):
    return PointService(db_session, test_settings)


class TestAwardPoints:
    """포인트 지급 테스트"""

    def test_award_profile_creation(self, point_service, make_user):
        """최초 지급 시 원장 기록과 총 포인트 증가"""
        user = make_user()

        result = point_service.award_points(user.privy_did, PointActionType.PROFILE_CREATION)

        assert result.success is True
        assert result.status == AwardStatus.AWARDED
        assert result.points_awarded == 100
        assert result.new_total == 100

    def test_award_is_idempotent(self, point_service, make_user):
        """같은 dedup 키로 두 번 지급하면 두 번째는 0 포인트 duplicate"""
        user = make_user()
        metadata = {"commentId": 42}

        first = point_service.award_points(user.privy_did, "COMMENT_CREATED", metadata)
        second = point_service.award_points(user.privy_did, "COMMENT_CREATED", metadata)

        assert first.points_awarded == 5
        assert second.success is True
        assert second.points_awarded == 0
        assert second.status == AwardStatus.DUPLICATE
        assert second.new_total == 5

    def test_concurrent_duplicate_is_caught_by_unique_key(
        self, point_service, make_user, db_session
    ):
        """사전 검사를 통과한 동시 요청도 유니크 제약으로 한 번만 반영"""
        user = make_user()
        metadata = {"followingId": "did:privy:other"}
        point_service.award_points(user.privy_did, PointActionType.FOLLOW_USER, metadata)

        with patch.object(point_service.points_repo, "dedup_key_exists", return_value=False):
            result = point_service.award_points(
                user.privy_did, PointActionType.FOLLOW_USER, metadata
            )

        assert result.status == AwardStatus.DUPLICATE
        assert result.points_awarded == 0
        assert result.new_total == 3
        rows = (
            db_session.query(PointTransaction)
            .filter(PointTransaction.user_id == user.privy_did)
            .count()
        )
        assert rows == 1

    def test_unknown_action_type(self, point_service, make_user):
        user = make_user()

        with pytest.raises(ValidationError) as exc_info:
            point_service.award_points(user.privy_did, "NOT_A_REAL_ACTION")

        assert exc_info.value.status_code == 400

    def test_unknown_user(self, point_service):
        with pytest.raises(NotFoundError):
            point_service.award_points("did:privy:missing", PointActionType.DAILY_LOGIN)

    def test_internal_action_rejected_for_public_award(self, point_service, make_user):
        """내부 전용 액션은 공개 지급 경로에서 거부"""
        user = make_user()

        with pytest.raises(ValidationError):
            point_service.award_points(
                user.privy_did,
                PointActionType.STREAK_BONUS,
                allow_internal=False,
            )

    def test_missing_dedup_field(self, point_service, make_user):
        """필수 metadata 키 누락은 400"""
        user = make_user()

        with pytest.raises(ValidationError) as exc_info:
            point_service.award_points(user.privy_did, PointActionType.COMMENT_CREATED, {})

        assert exc_info.value.details == {"field": "commentId"}

    def test_trade_without_signature_is_not_deduplicated(self, point_service, make_user):
        user = make_user()

        first = point_service.award_points(user.privy_did, PointActionType.TRADE_COMPLETED, {})
        second = point_service.award_points(user.privy_did, PointActionType.TRADE_COMPLETED, {})

        assert first.points_awarded == 25
        assert second.points_awarded == 25
        assert second.new_total == 50

    def test_daily_limit(self, point_service, make_user):
        """일일 한도 초과 시 limit_reached"""
        user = make_user()

        results = [
            point_service.award_points(user.privy_did, PointActionType.PROFILE_UPDATE)
            for _ in range(6)
        ]

        assert [r.status for r in results[:5]] == [AwardStatus.AWARDED] * 5
        assert results[5].status == AwardStatus.LIMIT_REACHED
        assert results[5].points_awarded == 0
        assert results[5].new_total == 50

    def test_hook_failure_does_not_undo_award(self, point_service, make_user):
        """업적 평가 실패는 로그만 남고 지급은 유지"""
        user = make_user()

        with patch.object(
            point_service.achievement_service, "evaluate", side_effect=RuntimeError("boom")
        ):
            result = point_service.award_points(user.privy_did, PointActionType.PROFILE_CREATION)

        assert result.status == AwardStatus.AWARDED
        assert point_service.user_repo.get_total_points(user.privy_did) == 100
        assert point_service.verify_integrity(user.privy_did).status == "OK"


class TestStreak:
    """연속 로그인 테스트"""

    def test_first_login_starts_streak(self, point_service, make_user):
        user = make_user()

        result = point_service.award_points(user.privy_did, PointActionType.DAILY_LOGIN)

        assert result.points_awarded == 10
        assert result.streak_info.current_streak == 1
        assert result.streak_info.multiplier == 1.0
        refreshed = point_service.user_repo.get_by_id(user.privy_did)
        assert refreshed.last_login_date == utc_today()

    def test_streak_bonus_at_seven_days(self, point_service, make_user):
        """7일 연속이면 1.5배 보너스가 STREAK_BONUS 로 같은 트랜잭션에 기록"""
        yesterday = utc_today() - timedelta(days=1)
        user = make_user(current_streak=6, longest_streak=6, last_login_date=yesterday)

        result = point_service.award_points(user.privy_did, PointActionType.DAILY_LOGIN)

        assert result.streak_info.current_streak == 7
        assert result.streak_info.longest_streak == 7
        assert result.streak_info.multiplier == 1.5
        assert result.streak_info.streak_bonus == 10
        assert result.points_awarded == 20
        assert result.new_total == 20

        history = point_service.get_history(user.privy_did)
        actions = sorted(entry.action_type for entry in history.transactions)
        assert actions == ["DAILY_LOGIN", "STREAK_BONUS"]

    def test_missed_day_resets_streak(self, point_service, make_user):
        last = utc_today() - timedelta(days=3)
        user = make_user(current_streak=10, longest_streak=10, last_login_date=last)

        result = point_service.award_points(user.privy_did, PointActionType.DAILY_LOGIN)

        assert result.streak_info.current_streak == 1
        assert result.streak_info.longest_streak == 10

    def test_second_login_same_day_is_duplicate(self, point_service, make_user):
        user = make_user()
        point_service.award_points(user.privy_did, PointActionType.DAILY_LOGIN)

        result = point_service.award_points(user.privy_did, PointActionType.DAILY_LOGIN)

        assert result.status == AwardStatus.DUPLICATE
        assert point_service.user_repo.get_by_id(user.privy_did).current_streak == 1


class TestLedgerQueries:
    """원장 조회 / 정합성 테스트"""

    def test_total_matches_ledger_sum(self, point_service, make_user):
        user = make_user()
        point_service.award_points(user.privy_did, PointActionType.PROFILE_CREATION)
        point_service.award_points(user.privy_did, PointActionType.DAILY_LOGIN)
        point_service.award_points(user.privy_did, PointActionType.LIKE_GIVEN, {"commentId": 1})
        point_service.award_points(user.privy_did, PointActionType.LIKE_GIVEN, {"commentId": 1})

        report = point_service.verify_integrity(user.privy_did)

        assert report.status == "OK"
        assert report.total_points == 112
        assert report.ledger_sum == 112
        assert report.transaction_count == 3

    def test_history_pagination(self, point_service, make_user):
        user = make_user()
        for comment_id in range(3):
            point_service.award_points(
                user.privy_did, PointActionType.COMMENT_CREATED, {"commentId": comment_id}
            )

        first_page = point_service.get_history(user.privy_did, page=1, limit=2)
        second_page = point_service.get_history(user.privy_did, page=2, limit=2)

        assert first_page.total == 3
        assert len(first_page.transactions) == 2
        assert first_page.has_next is True
        assert len(second_page.transactions) == 1
        assert second_page.has_next is False

    def test_history_limit_is_clamped(self, point_service, make_user, test_settings):
        user = make_user()

        result = point_service.get_history(user.privy_did, limit=10_000)

        assert result.limit == test_settings.HISTORY_MAX_LIMIT

    def test_user_points_summary(self, point_service, make_user):
        leader = make_user()
        other = make_user()
        point_service.award_points(leader.privy_did, PointActionType.PROFILE_CREATION)
        point_service.award_points(other.privy_did, PointActionType.DAILY_LOGIN)

        summary = point_service.get_user_points(other.privy_did)

        assert summary.total_points == 10
        assert summary.today_points == 10
        assert summary.rank == 2
        assert summary.referral_code == other.referral_code


class TestAdminAdjustment:
    """관리자 포인트 보정 테스트"""

    def test_adjustment_is_idempotent_by_ref_id(self, point_service, make_user):
        user = make_user()
        request = AdminPointsAdjustmentRequest(
            user_id=user.privy_did, points=300, reason="Contest prize", ref_id="contest-1"
        )

        first = point_service.admin_adjust_points(request)
        second = point_service.admin_adjust_points(request)

        assert first.points_awarded == 300
        assert second.status == AwardStatus.DUPLICATE
        assert second.new_total == 300

    def test_negative_adjustment_cannot_go_below_zero(self, point_service, make_user):
        user = make_user()
        point_service.award_points(user.privy_did, PointActionType.DAILY_LOGIN)

        with pytest.raises(ValidationError):
            point_service.admin_adjust_points(
                AdminPointsAdjustmentRequest(user_id=user.privy_did, points=-50, reason="Abuse")
            )

    def test_negative_adjustment(self, point_service, make_user):
        user = make_user()
        point_service.award_points(user.privy_did, PointActionType.PROFILE_CREATION)

        result = point_service.admin_adjust_points(
            AdminPointsAdjustmentRequest(user_id=user.privy_did, points=-40, reason="Correction")
        )

        assert result.points_awarded == -40
        assert result.new_total == 60
        assert point_service.verify_integrity(user.privy_did).status == "OK"
