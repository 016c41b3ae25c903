"""
포인트 원장 정합성 점검 스크립트

users.total_points 와 point_transactions 합계를 전체 사용자에 대해 비교합니다.
불일치가 하나라도 있으면 exit code 1.
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from socialapi.config import settings
from socialapi.database.session import get_db_context
from socialapi.services.point_service import PointService


def verify_all() -> int:
    mismatches = 0
    with get_db_context() as db:
        point_service = PointService(db, settings)
        user_ids = point_service.user_repo.list_all_ids()
        for user_id in user_ids:
            result = point_service.verify_integrity(user_id)
            if result.status != "OK":
                mismatches += 1
                print(
                    f"❌ {user_id}: total={result.total_points} ledger={result.ledger_sum} diff={result.difference}"
                )

    print(f"{'✅' if mismatches == 0 else '❌'} {len(user_ids)} users checked, {mismatches} mismatches")
    return mismatches


if __name__ == "__main__":
    sys.exit(1 if verify_all() else 0)
