from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from socialapi.schemas.common import CamelModel, DataSource


class FollowRequest(CamelModel):
    follower_id: str = Field(..., min_length=1)
    following_id: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def no_self_follow(self):
        if self.follower_id == self.following_id:
            raise ValueError("Cannot follow yourself")
        return self


class FollowResponse(CamelModel):
    success: bool = True
    follower_id: str
    following_id: str
    external_synced: bool
    points_awarded: int = 0
    message: Optional[str] = None


class FollowStateResponse(CamelModel):
    """팔로우 여부 - 로컬 값이 기준, 외부 값은 참고용"""

    follower_id: str
    following_id: str
    is_following: bool
    external_is_following: Optional[bool] = None
    data_source: DataSource


class FollowListType(str, Enum):
    FOLLOWERS = "followers"
    FOLLOWING = "following"


class SocialProfile(CamelModel):
    privy_did: Optional[str] = None
    username: str
    image: Optional[str] = None
    bio: Optional[str] = None
    is_og: bool = False
    followed_at: Optional[datetime] = None


class FollowListResponse(CamelModel):
    user_id: str
    type: FollowListType
    profiles: List[SocialProfile]
    count: int
    data_source: DataSource


class CommentCreateRequest(CamelModel):
    author_id: str = Field(..., min_length=1)
    profile_id: str = Field(..., min_length=1, description="댓글 대상 프로필 privyDid")
    text: str = Field(..., min_length=1, max_length=2000)


class CommentEntry(CamelModel):
    id: int
    author_id: str
    author_username: Optional[str] = None
    author_image: Optional[str] = None
    profile_id: str
    text: str
    tapestry_comment_id: Optional[str] = None
    like_count: int = 0
    created_at: Optional[datetime] = None


class CommentCreateResponse(CamelModel):
    comment: CommentEntry
    external_synced: bool
    points_awarded: int = 0


class CommentListResponse(CamelModel):
    profile_id: str
    comments: List[CommentEntry]
    total: int
    external_comments: List[Dict[str, Any]] = Field(default_factory=list)
    data_source: DataSource


class LikeRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    comment_id: int = Field(..., gt=0)


class LikeResponse(CamelModel):
    success: bool = True
    comment_id: int
    like_count: int
    external_synced: bool
    points_awarded: int = 0
