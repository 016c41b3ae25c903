import os

# 모듈 import 시점에 엔진이 만들어지므로 먼저 설정
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

from datetime import datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Any, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402
from dependency_injector import providers  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from socialapi.config import Settings  # noqa: E402
from socialapi.models import achievement, points, social, trade, user  # noqa: E402,F401
from socialapi.models.base import Base  # noqa: E402
from socialapi.providers.tapestry import TapestryError  # noqa: E402
from socialapi.repositories.achievement_repository import AchievementRepository  # noqa: E402
from socialapi.repositories.user_repository import UserRepository  # noqa: E402
from socialapi.core.achievement_catalog import DEFAULT_ACHIEVEMENTS  # noqa: E402

ADMIN_KEY = "test-admin-key"


class FakeTapestryClient:
    """외부 소셜 그래프 대역 - fail=True 면 모든 호출이 TapestryError"""

    def __init__(self):
        self.fail = False
        self.calls: List[tuple] = []
        self.follows = set()
        self.comments: List[Dict[str, Any]] = []
        self.identities: Dict[str, Dict[str, Any]] = {}
        self.suggested: Any = []
        self._next_id = 1

    @property
    def configured(self) -> bool:
        return True

    def _record(self, name: str, *args):
        self.calls.append((name, *args))
        if self.fail:
            raise TapestryError(f"{name} failed", status_code=503)

    def called(self, name: str) -> bool:
        return any(call[0] == name for call in self.calls)

    async def find_or_create_profile(self, wallet_address, username, bio=None, image=None):
        self._record("find_or_create_profile", wallet_address, username)
        return {"profile": {"id": username, "username": username}}

    async def update_profile(self, profile_id, **fields):
        self._record("update_profile", profile_id)
        return {"id": profile_id, **fields}

    async def get_profile(self, profile_id):
        self._record("get_profile", profile_id)
        return {"profile": {"id": profile_id, "username": profile_id}}

    async def get_followers(self, profile_id):
        self._record("get_followers", profile_id)
        return [{"username": start} for start, end in self.follows if end == profile_id]

    async def get_following(self, profile_id):
        self._record("get_following", profile_id)
        return [{"username": end} for start, end in self.follows if start == profile_id]

    async def get_suggested_profiles(self, wallet_address):
        self._record("get_suggested_profiles", wallet_address)
        return self.suggested

    async def get_identities(self, wallet_address):
        self._record("get_identities", wallet_address)
        return self.identities.get(wallet_address, {"identities": []})

    async def follow(self, follower_username, followee_username):
        self._record("follow", follower_username, followee_username)
        self.follows.add((follower_username, followee_username))
        return {}

    async def unfollow(self, follower_username, followee_username):
        self._record("unfollow", follower_username, followee_username)
        self.follows.discard((follower_username, followee_username))
        return {}

    async def get_follow_state(self, follower_username, followee_username):
        self._record("get_follow_state", follower_username, followee_username)
        return (follower_username, followee_username) in self.follows

    async def create_comment(self, author_username, target_username, text):
        self._record("create_comment", author_username, target_username)
        comment = {"id": f"tp-comment-{self._next_id}", "text": text}
        self._next_id += 1
        self.comments.append(comment)
        return {"comment": comment}

    async def list_comments(self, target_username):
        self._record("list_comments", target_username)
        return list(self.comments)

    async def create_like(self, username, tapestry_comment_id):
        self._record("create_like", username, tapestry_comment_id)
        return {}

    async def delete_like(self, username, tapestry_comment_id):
        self._record("delete_like", username, tapestry_comment_id)
        return {}

    async def ping(self):
        self._record("ping")
        return True


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL="sqlite://",
        ADMIN_API_KEY=ADMIN_KEY,
        TAPESTRY_API_KEY="test-tapestry-key",
        TAPESTRY_TIMEOUT_SECONDS=1.0,
        OG_MIN_TRADING_VOLUME_USD=10_000.0,
        OG_MIN_ACHIEVEMENTS=5,
        OG_MIN_POINTS=1000,
        OG_MIN_ACCOUNT_AGE_DAYS=90,
        OG_MIN_VETERAN_POINTS=250,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_tapestry():
    return FakeTapestryClient()


@pytest.fixture
def make_user(db_session):
    """테스트 사용자 생성 헬퍼"""
    repo = UserRepository(db_session)
    counter = {"n": 0}

    def _make(
        privy_did: Optional[str] = None,
        username: Optional[str] = None,
        referral_code: Optional[str] = None,
        created_at: Optional[datetime] = None,
        wallet: Optional[str] = None,
        **fields,
    ):
        counter["n"] += 1
        n = counter["n"]
        privy_did = privy_did or f"did:privy:user{n}"
        repo.create_user(
            privy_did=privy_did,
            username=username or f"user{n}",
            referral_code=referral_code or f"CODE{n:04d}",
            solana_wallet_address=wallet,
            created_at=created_at,
        )
        if fields:
            if "total_trading_volume_usd" in fields:
                fields["total_trading_volume_usd"] = Decimal(str(fields["total_trading_volume_usd"]))
            repo.update_fields(privy_did, **fields)
        return repo.get_by_id(privy_did)

    return _make


@pytest.fixture
def seed_achievements(db_session):
    def _seed():
        return AchievementRepository(db_session).upsert_by_key(DEFAULT_ACHIEVEMENTS)

    return _seed


@pytest.fixture
def days_ago():
    def _days_ago(days: int) -> datetime:
        return datetime.now(timezone.utc) - timedelta(days=days)

    return _days_ago


@pytest.fixture
def client(db_session, fake_tapestry, test_settings):
    """테스트 클라이언트 픽스처 (DB 세션 / 외부 클라이언트 / 설정 교체)"""
    from socialapi.database.session import get_db
    from socialapi.deps import get_tapestry_client
    from socialapi.main import create_app

    app = create_app()
    app.container.config.override(providers.Object(test_settings))  # type: ignore[attr-defined]

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tapestry_client] = lambda: fake_tapestry

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.container.config.reset_override()  # type: ignore[attr-defined]
