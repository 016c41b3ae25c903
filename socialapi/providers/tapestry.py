"""
외부 소셜 그래프(Tapestry) HTTP 클라이언트

모든 호출은 username(=Tapestry profile id) 기준이며, apiKey 는 쿼리 파라미터로 전달합니다.
HTTP 오류/타임아웃/네트워크 오류는 모두 TapestryError 로 변환됩니다.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from socialapi.config import Settings

logger = logging.getLogger(__name__)


class TapestryError(Exception):
    """External social-graph call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TapestryClient:
    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = settings.TAPESTRY_URL.rstrip("/")
        self.api_key = settings.TAPESTRY_API_KEY
        self.timeout = settings.TAPESTRY_TIMEOUT_SECONDS
        self.execution = settings.TAPESTRY_EXECUTION
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        query = {"apiKey": self.api_key}
        if params:
            query.update({k: v for k, v in params.items() if v is not None})

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, params=query, json=json)
        except httpx.TimeoutException:
            logger.error(f"Tapestry {method} {path} timeout")
            raise TapestryError("Social graph service timeout")
        except httpx.HTTPError as e:
            logger.error(f"Tapestry {method} {path} transport error: {str(e)}")
            raise TapestryError(f"Social graph service unreachable: {str(e)}")

        if response.status_code >= 400:
            logger.error(
                f"Tapestry {method} {path} failed: {response.status_code} {response.text}"
            )
            raise TapestryError(
                f"Social graph service returned {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise TapestryError("Invalid JSON from social graph service")

    # Profiles
    async def find_or_create_profile(
        self,
        wallet_address: str,
        username: str,
        bio: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = {
            "walletAddress": wallet_address,
            "username": username,
            "bio": bio,
            "image": image,
            "blockchain": "SOLANA",
            "execution": self.execution,
        }
        return await self._request(
            "POST",
            "/profiles/findOrCreate",
            json={k: v for k, v in body.items() if v is not None},
        )

    async def update_profile(self, profile_id: str, **fields: Any) -> Dict[str, Any]:
        body = {k: v for k, v in fields.items() if v is not None}
        return await self._request("PUT", f"/profiles/{profile_id}", json=body)

    async def get_profile(self, profile_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/profiles/{profile_id}")

    async def get_followers(self, profile_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"/profiles/{profile_id}/followers")
        return data.get("profiles", []) if isinstance(data, dict) else data

    async def get_following(self, profile_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"/profiles/{profile_id}/following")
        return data.get("profiles", []) if isinstance(data, dict) else data

    async def get_suggested_profiles(self, wallet_address: str) -> Any:
        return await self._request("GET", f"/profiles/suggested/{wallet_address}")

    async def get_identities(self, wallet_address: str) -> Dict[str, Any]:
        return await self._request("GET", f"/identities/{wallet_address}")

    # Follows
    async def follow(self, follower_username: str, followee_username: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/followers/add",
            json={"startId": follower_username, "endId": followee_username},
        )

    async def unfollow(self, follower_username: str, followee_username: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/followers/remove",
            json={"startId": follower_username, "endId": followee_username},
        )

    async def get_follow_state(self, follower_username: str, followee_username: str) -> bool:
        data = await self._request(
            "GET",
            "/followers/state",
            params={"startId": follower_username, "endId": followee_username},
        )
        return bool(data.get("isFollowing")) if isinstance(data, dict) else False

    # Comments / likes
    async def create_comment(
        self, author_username: str, target_username: str, text: str
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/comments",
            json={
                "profileId": author_username,
                "targetProfileId": target_username,
                "text": text,
            },
        )

    async def list_comments(self, target_username: str) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET", "/comments", params={"targetProfileId": target_username}
        )
        return data.get("comments", []) if isinstance(data, dict) else data

    async def create_like(self, username: str, tapestry_comment_id: str) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/likes/{tapestry_comment_id}", json={"startId": username}
        )

    async def delete_like(self, username: str, tapestry_comment_id: str) -> Dict[str, Any]:
        return await self._request(
            "DELETE", f"/likes/{tapestry_comment_id}", json={"startId": username}
        )

    async def ping(self) -> bool:
        await self._request("GET", "/profiles", params={"pageSize": 1})
        return True
