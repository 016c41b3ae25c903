"""
관리자 OG 수동 부여 스크립트

사용법:
    python scripts/admin_grant_og.py <username> [reason]
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from socialapi.config import settings
from socialapi.core.exceptions import ConflictError, NotFoundError
from socialapi.database.session import get_db_context
from socialapi.services.og_service import MANUAL_GRANT_REASON, OGService


def grant(username: str, reason: str = MANUAL_GRANT_REASON):
    with get_db_context() as db:
        try:
            status = OGService(db, settings).grant_og_manually(username=username, reason=reason)
        except NotFoundError:
            print(f"❌ User not found: {username}")
            return False
        except ConflictError:
            print(f"⚠️  {username} is already OG")
            return False

    print(f"✅ OG granted to {username} ({status.user_id}) at {status.og_granted_at}")
    return True


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    ok = grant(sys.argv[1], " ".join(sys.argv[2:]) or MANUAL_GRANT_REASON)
    sys.exit(0 if ok else 1)
