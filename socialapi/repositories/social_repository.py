import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from socialapi.models.social import Comment, Follow, Like
from socialapi.models.user import User
from socialapi.schemas.social import CommentEntry, SocialProfile
from socialapi.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


class SocialRepository:
    """팔로우 / 댓글 / 좋아요 리포지토리

    유니크 충돌(IntegrityError)은 롤백 후 그대로 전파하며, 서비스에서 ConflictError 로 변환합니다.
    """

    def __init__(self, db: Session):
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # Follows
    def follow_exists(self, follower_id: str, following_id: str) -> bool:
        return self.db.get(Follow, (follower_id, following_id)) is not None

    def create_follow(self, follower_id: str, following_id: str) -> None:
        self.db.add(
            Follow(follower_id=follower_id, following_id=following_id, created_at=utcnow())
        )
        self._commit()

    def delete_follow(self, follower_id: str, following_id: str) -> bool:
        deleted = (
            self.db.query(Follow)
            .filter(Follow.follower_id == follower_id, Follow.following_id == following_id)
            .delete(synchronize_session=False)
        )
        self._commit()
        return deleted == 1

    def count_followers(self, user_id: str) -> int:
        return self.db.query(func.count()).select_from(Follow).filter(
            Follow.following_id == user_id
        ).scalar() or 0

    def count_following(self, user_id: str) -> int:
        return self.db.query(func.count()).select_from(Follow).filter(
            Follow.follower_id == user_id
        ).scalar() or 0

    def list_followers(self, user_id: str) -> List[SocialProfile]:
        rows = (
            self.db.query(User, Follow.created_at)
            .join(Follow, Follow.follower_id == User.privy_did)
            .filter(Follow.following_id == user_id)
            .order_by(Follow.created_at.desc())
            .all()
        )
        return [self._to_profile(user, followed_at) for user, followed_at in rows]

    def list_following(self, user_id: str) -> List[SocialProfile]:
        rows = (
            self.db.query(User, Follow.created_at)
            .join(Follow, Follow.following_id == User.privy_did)
            .filter(Follow.follower_id == user_id)
            .order_by(Follow.created_at.desc())
            .all()
        )
        return [self._to_profile(user, followed_at) for user, followed_at in rows]

    @staticmethod
    def _to_profile(user: User, followed_at=None) -> SocialProfile:
        return SocialProfile(
            privy_did=user.privy_did,
            username=user.username,
            image=user.image,
            bio=user.bio,
            is_og=user.is_og,
            followed_at=followed_at,
        )

    # Comments
    def create_comment(
        self,
        author_id: str,
        profile_id: str,
        text: str,
        tapestry_comment_id: Optional[str] = None,
    ) -> CommentEntry:
        now = utcnow()
        comment = Comment(
            author_id=author_id,
            profile_id=profile_id,
            text=text,
            tapestry_comment_id=tapestry_comment_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(comment)
        self._commit()
        return self.get_comment(comment.id)

    def get_comment_model(self, comment_id: int) -> Optional[Comment]:
        return self.db.get(Comment, comment_id)

    def get_comment(self, comment_id: int) -> Optional[CommentEntry]:
        rows = self._comment_query().filter(Comment.id == comment_id).all()
        entries = self._to_comment_entries(rows)
        return entries[0] if entries else None

    def list_comments(
        self, profile_id: str, limit: int, offset: int
    ) -> Tuple[List[CommentEntry], int]:
        total = (
            self.db.query(func.count(Comment.id))
            .filter(Comment.profile_id == profile_id)
            .scalar()
            or 0
        )
        rows = (
            self._comment_query()
            .filter(Comment.profile_id == profile_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return self._to_comment_entries(rows), total

    def _comment_query(self):
        return self.db.query(Comment, User.username, User.image).join(
            User, User.privy_did == Comment.author_id
        )

    def _to_comment_entries(self, rows) -> List[CommentEntry]:
        like_counts = self.count_likes_for([comment.id for comment, _, _ in rows])
        return [
            CommentEntry(
                id=comment.id,
                author_id=comment.author_id,
                author_username=username,
                author_image=image,
                profile_id=comment.profile_id,
                text=comment.text,
                tapestry_comment_id=comment.tapestry_comment_id,
                like_count=like_counts.get(comment.id, 0),
                created_at=comment.created_at,
            )
            for comment, username, image in rows
        ]

    # Likes
    def like_exists(self, user_id: str, comment_id: int) -> bool:
        return (
            self.db.query(Like.id)
            .filter(Like.user_id == user_id, Like.comment_id == comment_id)
            .first()
            is not None
        )

    def create_like(self, user_id: str, comment_id: int) -> int:
        like = Like(user_id=user_id, comment_id=comment_id, created_at=utcnow())
        self.db.add(like)
        self._commit()
        return like.id

    def delete_like(self, user_id: str, comment_id: int) -> bool:
        deleted = (
            self.db.query(Like)
            .filter(Like.user_id == user_id, Like.comment_id == comment_id)
            .delete(synchronize_session=False)
        )
        self._commit()
        return deleted == 1

    def count_likes(self, comment_id: int) -> int:
        return self.count_likes_for([comment_id]).get(comment_id, 0)

    def count_likes_for(self, comment_ids: List[int]) -> Dict[int, int]:
        if not comment_ids:
            return {}
        rows = (
            self.db.query(Like.comment_id, func.count(Like.id))
            .filter(Like.comment_id.in_(comment_ids))
            .group_by(Like.comment_id)
            .all()
        )
        return {comment_id: int(count) for comment_id, count in rows}

    # Health
    def table_counts(self) -> Dict[str, int]:
        return {
            "users": self.db.query(func.count()).select_from(User).scalar() or 0,
            "follows": self.db.query(func.count()).select_from(Follow).scalar() or 0,
            "comments": self.db.query(func.count()).select_from(Comment).scalar() or 0,
            "likes": self.db.query(func.count()).select_from(Like).scalar() or 0,
        }
