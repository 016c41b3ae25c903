from datetime import timedelta

import pytest

from socialapi.core.exceptions import NotFoundError, ValidationError
from socialapi.repositories.points_repository import PendingTransaction, PointsRepository
from socialapi.schemas.leaderboard import LeaderboardPeriod
from socialapi.services.leaderboard_service import LeaderboardService
from socialapi.utils.date_utils import utcnow


@pytest.fixture
def leaderboard_service(db_session, test_settings):
    return LeaderboardService(db_session, test_settings)


@pytest.fixture
def add_points(db_session):
    """원장 + 총 포인트를 함께 기록 (created_at 지정 가능)"""
    repo = PointsRepository(db_session)

    def _add(user_id: str, points: int, days_ago: float = 0):
        created_at = utcnow() - timedelta(days=days_ago)
        repo.record_transactions(
            user_id,
            [
                PendingTransaction(
                    points=points,
                    action_type="ADMIN_ADJUSTMENT",
                    description="seed",
                    created_at=created_at,
                )
            ],
        )

    return _add


class TestLeaderboard:
    """리더보드 테스트"""

    def test_all_time_ordering(self, leaderboard_service, make_user, add_points):
        alice = make_user(username="alice")
        bob = make_user(username="bob")
        carol = make_user(username="carol")
        add_points(alice.privy_did, 100)
        add_points(bob.privy_did, 300)
        add_points(carol.privy_did, 200)

        result = leaderboard_service.get_leaderboard()

        assert [e.username for e in result.entries] == ["bob", "carol", "alice"]
        assert [e.rank for e in result.entries] == [1, 2, 3]
        assert result.period == LeaderboardPeriod.ALL

    def test_ties_broken_by_signup_time(self, leaderboard_service, make_user, add_points, days_ago):
        """동점이면 먼저 가입한 사용자가 앞"""
        late = make_user(username="late", created_at=days_ago(1))
        early = make_user(username="early", created_at=days_ago(10))
        add_points(late.privy_did, 50)
        add_points(early.privy_did, 50)

        result = leaderboard_service.get_leaderboard()

        assert [e.username for e in result.entries] == ["early", "late"]

    def test_weekly_window(self, leaderboard_service, make_user, add_points):
        """주간 리더보드는 최근 7일 원장만 합산"""
        veteran = make_user(username="veteran")
        rookie = make_user(username="rookie")
        add_points(veteran.privy_did, 1000, days_ago=20)
        add_points(veteran.privy_did, 10, days_ago=1)
        add_points(rookie.privy_did, 50, days_ago=2)

        weekly = leaderboard_service.get_leaderboard(period="weekly")
        all_time = leaderboard_service.get_leaderboard(period="all")

        assert [(e.username, e.points) for e in weekly.entries] == [("rookie", 50), ("veteran", 10)]
        assert [e.username for e in all_time.entries] == ["veteran", "rookie"]

    def test_users_without_points_are_excluded(self, leaderboard_service, make_user, add_points):
        active = make_user(username="active")
        make_user(username="idle")
        add_points(active.privy_did, 5)

        result = leaderboard_service.get_leaderboard()

        assert [e.username for e in result.entries] == ["active"]

    def test_limit_is_applied_and_clamped(self, leaderboard_service, make_user, add_points, test_settings):
        for i in range(3):
            user = make_user()
            add_points(user.privy_did, 10 * (i + 1))

        limited = leaderboard_service.get_leaderboard(limit=2)
        clamped = leaderboard_service.get_leaderboard(limit=10_000)

        assert len(limited.entries) == 2
        assert clamped.limit == test_settings.LEADERBOARD_MAX_LIMIT

    def test_invalid_limit(self, leaderboard_service):
        with pytest.raises(ValidationError):
            leaderboard_service.get_leaderboard(limit=0)

    def test_invalid_period(self, leaderboard_service):
        with pytest.raises(ValidationError):
            leaderboard_service.get_leaderboard(period="yearly")

    def test_requesting_user_outside_entries(self, leaderboard_service, make_user, add_points):
        """상위 목록 밖의 요청 사용자도 순위를 받음"""
        users = [make_user() for _ in range(3)]
        for i, user in enumerate(users):
            add_points(user.privy_did, 100 - i * 10)

        result = leaderboard_service.get_leaderboard(limit=1, user_id=users[2].privy_did)

        assert result.requesting_user.rank == 3
        assert result.requesting_user.points == 80
        assert result.requesting_user.in_entries is False

    def test_requesting_user_in_entries(self, leaderboard_service, make_user, add_points):
        user = make_user()
        add_points(user.privy_did, 10)

        result = leaderboard_service.get_leaderboard(user_id=user.privy_did)

        assert result.requesting_user.rank == 1
        assert result.requesting_user.in_entries is True

    def test_requesting_user_without_points_has_no_rank(
        self, leaderboard_service, make_user, add_points
    ):
        ranked = make_user()
        unranked = make_user()
        add_points(ranked.privy_did, 10)

        result = leaderboard_service.get_leaderboard(user_id=unranked.privy_did)

        assert result.requesting_user.rank is None
        assert result.requesting_user.points == 0

    def test_unknown_requesting_user(self, leaderboard_service):
        with pytest.raises(NotFoundError):
            leaderboard_service.get_leaderboard(user_id="did:privy:missing")
