"""
소셜 그래프 서비스 (팔로우 / 댓글 / 좋아요)

모든 쓰기는 DualWriteCoordinator 를 거치며, 외부 실패 시 동작은 DUAL_WRITE_POLICIES 를 따릅니다.
포인트 지급은 로컬 커밋 이후 best-effort 로 처리합니다.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialapi.config import Settings
from socialapi.core.dual_write import DualWriteCoordinator, SocialOperation
from socialapi.core.exceptions import ConflictError, NotFoundError
from socialapi.core.point_actions import PointActionType
from socialapi.providers.tapestry import TapestryClient
from socialapi.repositories.social_repository import SocialRepository
from socialapi.repositories.user_repository import UserRepository
from socialapi.schemas.common import DataSource
from socialapi.schemas.social import (
    CommentCreateRequest,
    CommentCreateResponse,
    CommentListResponse,
    FollowListResponse,
    FollowListType,
    FollowRequest,
    FollowResponse,
    FollowStateResponse,
    LikeRequest,
    LikeResponse,
    SocialProfile,
)
from socialapi.schemas.user import User
from socialapi.services.point_service import PointService

logger = logging.getLogger(__name__)


def extract_external_id(payload: Any) -> Optional[str]:
    """외부 응답에서 노드 ID 추출 ({"id"} 또는 {"comment": {"id"}})"""
    if not isinstance(payload, dict):
        return None
    if payload.get("id"):
        return str(payload["id"])
    nested = payload.get("comment")
    if isinstance(nested, dict) and nested.get("id"):
        return str(nested["id"])
    return None


class SocialService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        tapestry: TapestryClient,
        point_service: PointService,
        coordinator: Optional[DualWriteCoordinator] = None,
    ):
        self.db = db
        self.settings = settings
        self.tapestry = tapestry
        self.point_service = point_service
        self.coordinator = coordinator or DualWriteCoordinator(
            settings.TAPESTRY_TIMEOUT_SECONDS
        )
        self.user_repo = UserRepository(db)
        self.social_repo = SocialRepository(db)

    def _require_user(self, user_id: str) -> User:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", details={"userId": user_id})
        return user

    def _award(self, user_id: str, action: PointActionType, metadata: Dict[str, Any]) -> int:
        """소셜 활동 포인트 (best-effort)"""
        try:
            return self.point_service.award_points(user_id, action, metadata).points_awarded
        except Exception as e:
            logger.warning(f"{action.value} award failed for user {user_id}: {str(e)}")
            self.db.rollback()
            return 0

    # Follows
    async def follow(self, request: FollowRequest) -> FollowResponse:
        follower = self._require_user(request.follower_id)
        following = self._require_user(request.following_id)

        if self.social_repo.follow_exists(follower.privy_did, following.privy_did):
            raise ConflictError("Already following")

        def write_local(_outcome):
            try:
                self.social_repo.create_follow(follower.privy_did, following.privy_did)
            except IntegrityError:
                raise ConflictError("Already following")

        result = await self.coordinator.execute(
            SocialOperation.FOLLOW,
            lambda: self.tapestry.follow(follower.username, following.username),
            write_local,
        )
        logger.info(
            f"{follower.privy_did} followed {following.privy_did} (externalSynced={result.external_synced})"
        )

        points = self._award(
            follower.privy_did,
            PointActionType.FOLLOW_USER,
            {"followingId": following.privy_did},
        )
        return FollowResponse(
            follower_id=follower.privy_did,
            following_id=following.privy_did,
            external_synced=result.external_synced,
            points_awarded=points,
            message="Followed successfully",
        )

    async def unfollow(self, request: FollowRequest) -> FollowResponse:
        """언팔로우 - 외부 삭제 실패 시 로컬 관계는 그대로 유지"""
        follower = self._require_user(request.follower_id)
        following = self._require_user(request.following_id)

        if not self.social_repo.follow_exists(follower.privy_did, following.privy_did):
            raise NotFoundError("Not following")

        def delete_local(_outcome):
            if not self.social_repo.delete_follow(follower.privy_did, following.privy_did):
                raise NotFoundError("Not following")

        result = await self.coordinator.execute(
            SocialOperation.UNFOLLOW,
            lambda: self.tapestry.unfollow(follower.username, following.username),
            delete_local,
        )
        logger.info(f"{follower.privy_did} unfollowed {following.privy_did}")
        return FollowResponse(
            follower_id=follower.privy_did,
            following_id=following.privy_did,
            external_synced=result.external_synced,
            message="Unfollowed successfully",
        )

    async def get_follow_state(
        self, follower_id: str, following_id: str, check_external: bool = False
    ) -> FollowStateResponse:
        """팔로우 여부 - 로컬 결과가 기준이며 외부 결과는 참고용"""
        follower = self._require_user(follower_id)
        following = self._require_user(following_id)
        is_following = self.social_repo.follow_exists(follower.privy_did, following.privy_did)

        external_state = None
        if check_external:
            reads = await self.coordinator.gather_reads(
                {"state": self.tapestry.get_follow_state(follower.username, following.username)}
            )
            external_state = reads["state"]
            if external_state is not None and external_state != is_following:
                logger.warning(
                    f"Follow state mismatch {follower_id} -> {following_id}: local={is_following} external={external_state}"
                )

        return FollowStateResponse(
            follower_id=follower_id,
            following_id=following_id,
            is_following=is_following,
            external_is_following=external_state,
            data_source=DataSource(local=True, tapestry=external_state is not None),
        )

    async def list_follows(self, user_id: str, list_type: FollowListType) -> FollowListResponse:
        """
        팔로워/팔로잉 목록

        로컬 목록을 기준으로 하고, 외부 목록에만 있는 프로필을 뒤에 합칩니다.
        """
        user = self._require_user(user_id)
        if list_type == FollowListType.FOLLOWERS:
            profiles = self.social_repo.list_followers(user_id)
            external_call = self.tapestry.get_followers(user.username)
        else:
            profiles = self.social_repo.list_following(user_id)
            external_call = self.tapestry.get_following(user.username)

        reads = await self.coordinator.gather_reads({"profiles": external_call})
        external_profiles = reads["profiles"]

        merged_external = False
        if external_profiles:
            known = {profile.username for profile in profiles}
            for item in external_profiles:
                data = item.get("profile", item) if isinstance(item, dict) else {}
                username = data.get("username") or data.get("id")
                if not username or username in known:
                    continue
                profiles.append(
                    SocialProfile(username=username, image=data.get("image"), bio=data.get("bio"))
                )
                known.add(username)
                merged_external = True

        return FollowListResponse(
            user_id=user_id,
            type=list_type,
            profiles=profiles,
            count=len(profiles),
            data_source=DataSource(
                local=True,
                tapestry=external_profiles is not None,
                social_data=merged_external,
            ),
        )

    # Comments
    async def create_comment(self, request: CommentCreateRequest) -> CommentCreateResponse:
        author = self._require_user(request.author_id)
        target = self._require_user(request.profile_id)

        def write_local(outcome):
            return self.social_repo.create_comment(
                author_id=author.privy_did,
                profile_id=target.privy_did,
                text=request.text,
                tapestry_comment_id=extract_external_id(outcome.result) if outcome.synced else None,
            )

        result = await self.coordinator.execute(
            SocialOperation.COMMENT_CREATE,
            lambda: self.tapestry.create_comment(author.username, target.username, request.text),
            write_local,
        )
        comment = result.value

        points = self._award(
            author.privy_did, PointActionType.COMMENT_CREATED, {"commentId": comment.id}
        )
        return CommentCreateResponse(
            comment=comment,
            external_synced=result.external_synced,
            points_awarded=points,
        )

    async def list_comments(
        self,
        profile_id: str,
        page: int = 1,
        limit: int = 20,
        include_external: bool = False,
    ) -> CommentListResponse:
        target = self._require_user(profile_id)
        comments, total = self.social_repo.list_comments(
            profile_id, limit=limit, offset=(page - 1) * limit
        )

        external_comments = None
        if include_external:
            reads = await self.coordinator.gather_reads(
                {"comments": self.tapestry.list_comments(target.username)}
            )
            external_comments = reads["comments"]

        return CommentListResponse(
            profile_id=profile_id,
            comments=comments,
            total=total,
            external_comments=external_comments or [],
            data_source=DataSource(
                local=True,
                tapestry=external_comments is not None,
                social_data=bool(external_comments),
            ),
        )

    # Likes
    async def like(self, request: LikeRequest) -> LikeResponse:
        user = self._require_user(request.user_id)
        comment = self.social_repo.get_comment_model(request.comment_id)
        if comment is None:
            raise NotFoundError("Comment not found", details={"commentId": request.comment_id})

        if self.social_repo.like_exists(user.privy_did, comment.id):
            raise ConflictError("Already liked")

        # 외부 댓글 ID 가 없으면 외부에 좋아요를 남길 대상이 없음
        external_call = None
        if comment.tapestry_comment_id:
            tapestry_comment_id = comment.tapestry_comment_id
            external_call = lambda: self.tapestry.create_like(user.username, tapestry_comment_id)  # noqa: E731

        def write_local(_outcome):
            try:
                return self.social_repo.create_like(user.privy_did, comment.id)
            except IntegrityError:
                raise ConflictError("Already liked")

        result = await self.coordinator.execute(SocialOperation.LIKE, external_call, write_local)

        points = self._award(
            user.privy_did, PointActionType.LIKE_GIVEN, {"commentId": comment.id}
        )
        if comment.author_id != user.privy_did:
            self._award(
                comment.author_id,
                PointActionType.LIKE_RECEIVED,
                {"commentId": comment.id, "likedBy": user.privy_did},
            )

        return LikeResponse(
            comment_id=comment.id,
            like_count=self.social_repo.count_likes(comment.id),
            external_synced=result.external_synced,
            points_awarded=points,
        )

    async def unlike(self, request: LikeRequest) -> LikeResponse:
        """좋아요 취소 - 외부 삭제 실패 시 로컬 좋아요 유지"""
        user = self._require_user(request.user_id)
        comment = self.social_repo.get_comment_model(request.comment_id)
        if comment is None:
            raise NotFoundError("Comment not found", details={"commentId": request.comment_id})

        if not self.social_repo.like_exists(user.privy_did, comment.id):
            raise NotFoundError("Not liked")

        external_call = None
        if comment.tapestry_comment_id:
            tapestry_comment_id = comment.tapestry_comment_id
            external_call = lambda: self.tapestry.delete_like(user.username, tapestry_comment_id)  # noqa: E731

        def delete_local(_outcome):
            if not self.social_repo.delete_like(user.privy_did, comment.id):
                raise NotFoundError("Not liked")

        result = await self.coordinator.execute(SocialOperation.UNLIKE, external_call, delete_local)
        return LikeResponse(
            comment_id=comment.id,
            like_count=self.social_repo.count_likes(comment.id),
            external_synced=result.external_synced,
        )
