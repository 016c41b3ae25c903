from fastapi import Depends, Request
from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.database.session import get_db
from socialapi.providers.tapestry import TapestryClient

# Services
from socialapi.services.achievement_service import AchievementService
from socialapi.services.health_service import HealthService
from socialapi.services.leaderboard_service import LeaderboardService
from socialapi.services.og_service import OGService
from socialapi.services.point_service import PointService
from socialapi.services.profile_service import ProfileService
from socialapi.services.referral_service import ReferralService
from socialapi.services.social_service import SocialService
from socialapi.services.trade_service import TradeService


def get_settings(request: Request) -> Settings:
    return request.app.container.config()


def get_tapestry_client(request: Request) -> TapestryClient:
    return request.app.container.tapestry_client()


def get_point_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> PointService:
    return PointService(db=db, settings=settings)


def get_achievement_service(
    point_service: PointService = Depends(get_point_service),
) -> AchievementService:
    return point_service.achievement_service


def get_referral_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    point_service: PointService = Depends(get_point_service),
) -> ReferralService:
    return ReferralService(db=db, settings=settings, point_service=point_service)


def get_leaderboard_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> LeaderboardService:
    return LeaderboardService(db=db, settings=settings)


def get_og_service(
    db: Session = Depends(get_db), settings: Settings = Depends(get_settings)
) -> OGService:
    return OGService(db=db, settings=settings)


def get_trade_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    point_service: PointService = Depends(get_point_service),
    og_service: OGService = Depends(get_og_service),
) -> TradeService:
    return TradeService(
        db=db, settings=settings, point_service=point_service, og_service=og_service
    )


def get_social_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tapestry: TapestryClient = Depends(get_tapestry_client),
    point_service: PointService = Depends(get_point_service),
) -> SocialService:
    return SocialService(
        db=db, settings=settings, tapestry=tapestry, point_service=point_service
    )


def get_profile_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tapestry: TapestryClient = Depends(get_tapestry_client),
    point_service: PointService = Depends(get_point_service),
    referral_service: ReferralService = Depends(get_referral_service),
) -> ProfileService:
    return ProfileService(
        db=db,
        settings=settings,
        tapestry=tapestry,
        point_service=point_service,
        referral_service=referral_service,
    )


def get_health_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    tapestry: TapestryClient = Depends(get_tapestry_client),
) -> HealthService:
    return HealthService(db=db, settings=settings, tapestry=tapestry)
