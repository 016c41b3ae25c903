"""
소셜 그래프 API 라우터 (팔로우 / 댓글 / 좋아요)

쓰기 응답의 externalSynced 는 외부 소셜 그래프 반영 여부입니다.
- 생성(팔로우, 댓글, 좋아요): 외부 실패 시에도 로컬 저장 후 200 (externalSynced=false)
- 삭제(언팔로우, 좋아요 취소): 외부 실패 시 500 (EXTERNAL_001), 로컬 데이터 유지
"""

from fastapi import APIRouter, Depends, Query

from socialapi.deps import get_social_service
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
)
from socialapi.services.social_service import SocialService

followers_router = APIRouter(prefix="/followers", tags=["followers"])
comments_router = APIRouter(tags=["comments"])


@followers_router.post("/add", response_model=FollowResponse)
async def follow(
    request: FollowRequest,
    social_service: SocialService = Depends(get_social_service),
) -> FollowResponse:
    """팔로우 - 이미 팔로우 중이면 409"""
    return await social_service.follow(request)


@followers_router.post("/remove", response_model=FollowResponse)
async def unfollow(
    request: FollowRequest,
    social_service: SocialService = Depends(get_social_service),
) -> FollowResponse:
    """언팔로우 - 팔로우 관계가 없으면 404"""
    return await social_service.unfollow(request)


@followers_router.get("/state", response_model=FollowStateResponse)
async def follow_state(
    follower_id: str = Query(..., alias="followerId", min_length=1),
    following_id: str = Query(..., alias="followingId", min_length=1),
    check_external: bool = Query(False, alias="checkExternal"),
    social_service: SocialService = Depends(get_social_service),
) -> FollowStateResponse:
    return await social_service.get_follow_state(
        follower_id, following_id, check_external=check_external
    )


@followers_router.get("/list", response_model=FollowListResponse)
async def follow_list(
    user_id: str = Query(..., alias="userId", min_length=1),
    list_type: FollowListType = Query(FollowListType.FOLLOWERS, alias="type"),
    social_service: SocialService = Depends(get_social_service),
) -> FollowListResponse:
    return await social_service.list_follows(user_id, list_type)


@comments_router.get("/comments", response_model=CommentListResponse)
async def list_comments(
    profile_id: str = Query(..., alias="profileId", min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    include_external: bool = Query(False, alias="includeExternal"),
    social_service: SocialService = Depends(get_social_service),
) -> CommentListResponse:
    return await social_service.list_comments(
        profile_id, page=page, limit=limit, include_external=include_external
    )


@comments_router.post("/comments", response_model=CommentCreateResponse)
async def create_comment(
    request: CommentCreateRequest,
    social_service: SocialService = Depends(get_social_service),
) -> CommentCreateResponse:
    return await social_service.create_comment(request)


@comments_router.post("/likes", response_model=LikeResponse)
async def like_comment(
    request: LikeRequest,
    social_service: SocialService = Depends(get_social_service),
) -> LikeResponse:
    """좋아요 - 이미 좋아요한 댓글이면 409"""
    return await social_service.like(request)


@comments_router.delete("/likes", response_model=LikeResponse)
async def unlike_comment(
    request: LikeRequest,
    social_service: SocialService = Depends(get_social_service),
) -> LikeResponse:
    """좋아요 취소 - 좋아요가 없으면 404"""
    return await social_service.unlike(request)
