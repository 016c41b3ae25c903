from unittest.mock import patch

import pytest

ADMIN_KEY = "test-admin-key"

API = "/api/v1"


@pytest.fixture
def create_profile(client):
    def _create(privy_did: str, username: str, **fields):
        response = client.post(
            f"{API}/profiles",
            json={"privyDid": privy_did, "username": username, **fields},
        )
        assert response.status_code == 200, response.text
        return response.json()["profile"]

    return _create


class TestPointRoutes:
    """포인트 라우터 테스트"""

    def test_award_points(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.post(
            f"{API}/points/award",
            json={"userId": "did:privy:alice", "actionType": "DAILY_LOGIN"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["pointsAwarded"] == 10
        assert data["newTotal"] == 110
        assert data["streakInfo"]["currentStreak"] == 1

    def test_duplicate_award_is_success(self, client, create_profile):
        create_profile("did:privy:alice", "alice")
        body = {"userId": "did:privy:alice", "actionType": "DAILY_LOGIN"}
        client.post(f"{API}/points/award", json=body)

        response = client.post(f"{API}/points/award", json=body)

        assert response.status_code == 200
        assert response.json()["pointsAwarded"] == 0
        assert response.json()["status"] == "duplicate"

    def test_unknown_action_type_is_400(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.post(
            f"{API}/points/award",
            json={"userId": "did:privy:alice", "actionType": "FREE_MONEY"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_001"

    def test_internal_action_type_is_400(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.post(
            f"{API}/points/award",
            json={"userId": "did:privy:alice", "actionType": "ACHIEVEMENT_UNLOCKED"},
        )

        assert response.status_code == 400

    def test_missing_metadata_is_400(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.post(
            f"{API}/points/award",
            json={"userId": "did:privy:alice", "actionType": "COMMENT_CREATED"},
        )

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "commentId"}

    def test_unknown_user_is_404(self, client):
        response = client.post(
            f"{API}/points/award",
            json={"userId": "did:privy:ghost", "actionType": "DAILY_LOGIN"},
        )

        assert response.status_code == 404
        assert response.json() == {
            "error": "User not found",
            "code": "NOT_FOUND_001",
            "details": {"userId": "did:privy:ghost"},
        }

    def test_history(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.get(f"{API}/points/history", params={"userId": "did:privy:alice"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["transactions"][0]["actionType"] == "PROFILE_CREATION"
        assert data["hasNext"] is False

    def test_leaderboard(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.get(
            f"{API}/points/leaderboard",
            params={"period": "weekly", "userId": "did:privy:alice"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["entries"][0]["userId"] == "did:privy:alice"
        assert data["requestingUser"] == {"rank": 1, "points": 100, "inEntries": True}

    @pytest.mark.parametrize("params", [{"limit": 0}, {"period": "yearly"}])
    def test_leaderboard_invalid_params(self, client, params):
        response = client.get(f"{API}/points/leaderboard", params=params)

        assert response.status_code == 400

    def test_user_points_and_integrity(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        summary = client.get(f"{API}/points/user", params={"userId": "did:privy:alice"})
        integrity = client.get(f"{API}/points/integrity", params={"userId": "did:privy:alice"})

        assert summary.json()["totalPoints"] == 100
        assert summary.json()["rank"] == 1
        assert integrity.json()["status"] == "OK"

    def test_admin_adjust_requires_key(self, client, create_profile):
        create_profile("did:privy:alice", "alice")
        body = {"userId": "did:privy:alice", "points": 50, "reason": "bonus"}

        denied = client.post(f"{API}/points/admin/adjust", json=body)
        allowed = client.post(
            f"{API}/points/admin/adjust", json=body, headers={"X-Admin-Key": ADMIN_KEY}
        )

        assert denied.status_code == 403
        assert denied.json()["code"] == "AUTH_002"
        assert allowed.status_code == 200
        assert allowed.json()["newTotal"] == 150

    def test_achievements_init_and_catalog(self, client):
        init = client.post(f"{API}/points/achievements/init")
        catalog = client.get(f"{API}/points/achievements/catalog")

        assert init.status_code == 200
        assert init.json()["count"] == len(catalog.json())
        assert catalog.json()[0]["pointsReward"] == 50

    def test_user_achievements(self, client, create_profile):
        client.post(f"{API}/points/init")
        create_profile("did:privy:alice", "alice")

        response = client.get(f"{API}/points/achievements", params={"userId": "did:privy:alice"})

        assert response.status_code == 200
        assert response.json()["totalUnlocked"] == 1

    def test_unexpected_error_is_500(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        with patch(
            "socialapi.services.point_service.PointService.get_user_points",
            side_effect=RuntimeError("boom"),
        ):
            response = client.get(f"{API}/points/user", params={"userId": "did:privy:alice"})

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_001"


class TestReferralRoutes:
    def test_referral_flow(self, client, create_profile):
        referrer = create_profile("did:privy:alice", "alice")
        create_profile("did:privy:bob", "bob")

        check = client.get(
            f"{API}/points/referrals/check", params={"code": referrer["referralCode"]}
        )
        processed = client.post(
            f"{API}/points/referrals",
            json={"referralCode": referrer["referralCode"], "newUserId": "did:privy:bob"},
        )
        again = client.post(
            f"{API}/points/referrals",
            json={"referralCode": referrer["referralCode"], "newUserId": "did:privy:bob"},
        )
        stats = client.get(f"{API}/points/referrals", params={"userId": "did:privy:alice"})

        assert check.json()["valid"] is True
        assert processed.status_code == 200
        assert again.status_code == 409
        assert stats.json()["totalReferrals"] == 1

    def test_self_referral_is_400(self, client, create_profile):
        alice = create_profile("did:privy:alice", "alice")

        response = client.post(
            f"{API}/points/referrals",
            json={"referralCode": alice["referralCode"], "newUserId": "did:privy:alice"},
        )

        assert response.status_code == 400


class TestOGRoutes:
    def test_trade_complete_and_progress(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        trade = client.post(
            f"{API}/trades/complete",
            json={
                "privyDid": "did:privy:alice",
                "tradeVolumeUSD": 12000,
                "transactionSignature": "sig-1",
            },
        )
        progress = client.get(f"{API}/og/progress", params={"userId": "did:privy:alice"})

        assert trade.status_code == 200
        assert trade.json()["ogGranted"] is True
        assert trade.json()["newTotalVolume"] == 12000
        assert progress.json()["isOg"] is True
        assert progress.json()["progressPercentage"] == 0

    def test_trade_requires_user_reference(self, client):
        response = client.post(f"{API}/trades/complete", json={"tradeVolumeUSD": 10})

        assert response.status_code == 400

    def test_trade_unregistered_user(self, client):
        response = client.post(
            f"{API}/trades/complete",
            json={"walletAddress": "unknown", "tradeVolumeUSD": 10},
        )

        assert response.status_code == 200
        assert response.json()["volumeUpdated"] is False

    def test_manual_grant(self, client, create_profile):
        create_profile("did:privy:alice", "alice")
        headers = {"X-Admin-Key": ADMIN_KEY}

        first = client.post(f"{API}/og/admin/grant", json={"username": "alice"}, headers=headers)
        second = client.post(f"{API}/og/admin/grant", json={"username": "alice"}, headers=headers)

        assert first.status_code == 200
        assert first.json()["ogReason"] == "Manual admin grant"
        assert second.status_code == 409


class TestSocialRoutes:
    """팔로우 / 댓글 / 좋아요 라우터 테스트"""

    def test_follow_and_unfollow(self, client, create_profile, fake_tapestry):
        create_profile("did:privy:alice", "alice")
        create_profile("did:privy:bob", "bob")
        body = {"followerId": "did:privy:alice", "followingId": "did:privy:bob"}

        followed = client.post(f"{API}/followers/add", json=body)
        fake_tapestry.fail = True
        rejected = client.post(f"{API}/followers/remove", json=body)
        state = client.get(
            f"{API}/followers/state",
            params={"followerId": "did:privy:alice", "followingId": "did:privy:bob"},
        )

        assert followed.status_code == 200
        assert followed.json()["externalSynced"] is True
        assert rejected.status_code == 500
        assert rejected.json()["code"] == "EXTERNAL_001"
        assert state.json()["isFollowing"] is True

    def test_follow_self_is_400(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.post(
            f"{API}/followers/add",
            json={"followerId": "did:privy:alice", "followingId": "did:privy:alice"},
        )

        assert response.status_code == 400

    def test_follow_twice_is_409(self, client, create_profile):
        create_profile("did:privy:alice", "alice")
        create_profile("did:privy:bob", "bob")
        body = {"followerId": "did:privy:alice", "followingId": "did:privy:bob"}
        client.post(f"{API}/followers/add", json=body)

        response = client.post(f"{API}/followers/add", json=body)

        assert response.status_code == 409

    def test_follow_list(self, client, create_profile):
        create_profile("did:privy:alice", "alice")
        create_profile("did:privy:bob", "bob")
        client.post(
            f"{API}/followers/add",
            json={"followerId": "did:privy:alice", "followingId": "did:privy:bob"},
        )

        response = client.get(
            f"{API}/followers/list", params={"userId": "did:privy:bob", "type": "followers"}
        )

        assert response.status_code == 200
        assert [p["username"] for p in response.json()["profiles"]] == ["alice"]

    def test_comment_like_unlike(self, client, create_profile):
        create_profile("did:privy:alice", "alice")
        create_profile("did:privy:bob", "bob")

        created = client.post(
            f"{API}/comments",
            json={"authorId": "did:privy:alice", "profileId": "did:privy:bob", "text": "gm"},
        )
        comment_id = created.json()["comment"]["id"]
        liked = client.post(
            f"{API}/likes", json={"userId": "did:privy:bob", "commentId": comment_id}
        )
        listed = client.get(f"{API}/comments", params={"profileId": "did:privy:bob"})
        unliked = client.request(
            "DELETE", f"{API}/likes", json={"userId": "did:privy:bob", "commentId": comment_id}
        )
        unliked_again = client.request(
            "DELETE", f"{API}/likes", json={"userId": "did:privy:bob", "commentId": comment_id}
        )

        assert created.status_code == 200
        assert liked.json()["likeCount"] == 1
        assert listed.json()["comments"][0]["likeCount"] == 1
        assert unliked.json()["likeCount"] == 0
        assert unliked_again.status_code == 404


class TestProfileRoutes:
    def test_create_profile_response(self, client):
        response = client.post(
            f"{API}/profiles",
            json={
                "privyDid": "did:privy:alice",
                "username": "alice",
                "solanaWalletAddress": "wallet-alice",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["created"] is True
        assert data["externalSynced"] is True
        assert data["pointsAwarded"] == 100
        assert data["profile"]["privyDid"] == "did:privy:alice"

    def test_invalid_username_is_400(self, client):
        response = client.post(
            f"{API}/profiles", json={"privyDid": "did:privy:alice", "username": "a!"}
        )

        assert response.status_code == 400

    def test_username_taken_is_409(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.post(
            f"{API}/profiles", json={"privyDid": "did:privy:other", "username": "alice"}
        )

        assert response.status_code == 409

    def test_username_routes(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        eligibility = client.get(
            f"{API}/profiles/username", params={"privyDid": "did:privy:alice"}
        )
        changed = client.put(
            f"{API}/profiles/username",
            json={"privyDid": "did:privy:alice", "username": "alice2"},
        )
        blocked = client.put(
            f"{API}/profiles/username",
            json={"privyDid": "did:privy:alice", "username": "alice3"},
        )

        assert eligibility.json()["canChange"] is True
        assert changed.json()["profile"]["username"] == "alice2"
        assert blocked.status_code == 409
        assert "nextAllowedChange" in blocked.json()["details"]

    def test_update_profile(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.put(f"{API}/profiles/did:privy:alice", json={"bio": "hodl"})

        assert response.status_code == 200
        assert response.json()["profile"]["bio"] == "hodl"

    def test_profile_by_wallet_and_identities(self, client, create_profile):
        create_profile("did:privy:alice", "alice", solanaWalletAddress="wallet-alice")

        by_wallet = client.get(f"{API}/profiles", params={"walletAddress": "wallet-alice"})
        identity = client.get(f"{API}/identities", params={"walletAddress": "wallet-alice"})
        missing = client.get(f"{API}/profiles", params={"walletAddress": "wallet-none"})

        assert by_wallet.json()["localProfile"]["username"] == "alice"
        assert identity.json()["dataSource"]["local"] is True
        assert missing.status_code == 404

    def test_enhanced_profile(self, client, create_profile):
        create_profile("did:privy:alice", "alice")

        response = client.get(f"{API}/profiles/enhanced", params={"privyDid": "did:privy:alice"})

        assert response.status_code == 200
        assert response.json()["socialCounts"] == {"followers": 0, "following": 0}
        assert response.json()["dataSource"]["tapestry"] is True


class TestProfileListingRoutes:
    def test_all_profiles(self, client, create_profile):
        create_profile("did:privy:alice", "alice")
        create_profile("did:privy:bob", "bob")

        response = client.get(f"{API}/profiles/all-profiles")

        assert response.status_code == 200
        assert response.json()["count"] == 2
        assert {p["privyDid"] for p in response.json()["profiles"]} == {
            "did:privy:alice",
            "did:privy:bob",
        }

    def test_search(self, client, create_profile):
        create_profile("did:privy:alice", "alice")
        create_profile("did:privy:bob", "bob")

        found = client.post(f"{API}/search", json={"query": "ALI"})
        empty = client.post(f"{API}/search", json={"query": ""})

        assert [p["username"] for p in found.json()["profiles"]] == ["alice"]
        assert empty.status_code == 400
        assert empty.json()["code"] == "VALIDATION_001"


class TestHealthRoutes:
    def test_health(self, client):
        response = client.get(f"{API}/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_dual_mode_health(self, client, fake_tapestry):
        healthy = client.get(f"{API}/health/tapestry")
        fake_tapestry.fail = True
        degraded = client.get(f"{API}/health/tapestry")

        assert healthy.json()["status"] == "healthy"
        assert degraded.json()["status"] == "degraded"
        assert degraded.json()["database"]["connected"] is True
