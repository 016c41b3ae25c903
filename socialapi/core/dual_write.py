"""
소셜 그래프 이중 쓰기(dual-write) 정책

쓰기 순서: 외부 소셜 그래프 → 로컬 DB (로컬 DB 가 기준 저장소)

외부 호출 실패 시 동작은 연산별로 DUAL_WRITE_POLICIES 에 명시합니다.
- 생성/수정: 로컬 쓰기를 그대로 진행하고 externalSynced=false 로 응답 (가용성 우선)
- 삭제: 로컬 삭제를 중단하고 ExternalDependencyError (외부 그래프와의 일관성 우선)
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

from socialapi.core.exceptions import ExternalDependencyError
from socialapi.providers.tapestry import TapestryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SocialOperation(str, Enum):
    PROFILE_UPSERT = "PROFILE_UPSERT"
    PROFILE_UPDATE = "PROFILE_UPDATE"
    USERNAME_UPDATE = "USERNAME_UPDATE"
    FOLLOW = "FOLLOW"
    UNFOLLOW = "UNFOLLOW"
    COMMENT_CREATE = "COMMENT_CREATE"
    LIKE = "LIKE"
    UNLIKE = "UNLIKE"


class ExternalFailureAction(str, Enum):
    PROCEED_LOCALLY = "proceed_locally"
    ABORT = "abort"


@dataclass(frozen=True)
class DualWritePolicy:
    external_first: bool
    on_external_failure: ExternalFailureAction


DUAL_WRITE_POLICIES: Dict[SocialOperation, DualWritePolicy] = {
    SocialOperation.PROFILE_UPSERT: DualWritePolicy(True, ExternalFailureAction.PROCEED_LOCALLY),
    SocialOperation.PROFILE_UPDATE: DualWritePolicy(True, ExternalFailureAction.PROCEED_LOCALLY),
    SocialOperation.USERNAME_UPDATE: DualWritePolicy(True, ExternalFailureAction.PROCEED_LOCALLY),
    SocialOperation.FOLLOW: DualWritePolicy(True, ExternalFailureAction.PROCEED_LOCALLY),
    SocialOperation.UNFOLLOW: DualWritePolicy(True, ExternalFailureAction.ABORT),
    SocialOperation.COMMENT_CREATE: DualWritePolicy(True, ExternalFailureAction.PROCEED_LOCALLY),
    SocialOperation.LIKE: DualWritePolicy(True, ExternalFailureAction.PROCEED_LOCALLY),
    SocialOperation.UNLIKE: DualWritePolicy(True, ExternalFailureAction.ABORT),
}


@dataclass
class ExternalOutcome:
    synced: bool
    result: Any = None
    error: Optional[str] = None


@dataclass
class DualWriteResult(Generic[T]):
    value: T
    external_synced: bool
    external_result: Any = None
    external_error: Optional[str] = None


class DualWriteCoordinator:
    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds

    async def run_external(
        self,
        operation: SocialOperation,
        call: Callable[[], Awaitable[Any]],
    ) -> ExternalOutcome:
        """
        외부 쓰기 실행 (타임아웃 적용)

        호출이 던지는 모든 예외를 외부 실패로 보고
        연산 정책에 따라 로컬 진행 또는 중단합니다.

        Raises:
            ExternalDependencyError: 정책이 ABORT 인 연산에서 외부 호출이 실패한 경우
        """
        policy = DUAL_WRITE_POLICIES[operation]
        try:
            result = await asyncio.wait_for(call(), timeout=self.timeout_seconds)
            return ExternalOutcome(synced=True, result=result)
        except Exception as e:
            reason = str(e) or type(e).__name__
            if not isinstance(e, (TapestryError, asyncio.TimeoutError)):
                logger.error(
                    f"Unexpected error from external social graph call: {reason}", exc_info=True
                )
            if policy.on_external_failure == ExternalFailureAction.ABORT:
                logger.error(
                    f"{operation.value} aborted: external social graph write failed ({reason})"
                )
                raise ExternalDependencyError(
                    f"{operation.value} requires the external social graph service",
                    details={"operation": operation.value, "reason": reason},
                )
            logger.warning(
                f"{operation.value} external write failed, continuing locally: {reason}"
            )
            return ExternalOutcome(synced=False, error=reason)

    async def execute(
        self,
        operation: SocialOperation,
        external_call: Optional[Callable[[], Awaitable[Any]]],
        local_write: Callable[[ExternalOutcome], T],
    ) -> DualWriteResult[T]:
        """
        정책에 따라 외부 쓰기 후 로컬 쓰기를 실행

        external_call 이 None 이면 외부 쓰기를 건너뛰고(동기화 대상 없음) 로컬만 씁니다.
        외부 호출이 끝난(성공 또는 허용된 실패) 뒤에만 local_write 가 실행됩니다.
        """
        if external_call is None:
            outcome = ExternalOutcome(synced=False, error="skipped")
        else:
            outcome = await self.run_external(operation, external_call)

        value = local_write(outcome)
        return DualWriteResult(
            value=value,
            external_synced=outcome.synced,
            external_result=outcome.result,
            external_error=outcome.error,
        )

    async def gather_reads(
        self, calls: Dict[str, Awaitable[Any]]
    ) -> Dict[str, Optional[Any]]:
        """외부 읽기 병렬 실행 - 실패한 항목은 None (부분 결과 허용)"""
        names = list(calls)
        results = await asyncio.gather(
            *(asyncio.wait_for(calls[name], timeout=self.timeout_seconds) for name in names),
            return_exceptions=True,
        )

        merged: Dict[str, Optional[Any]] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"External read '{name}' failed: {str(result) or type(result).__name__}"
                )
                merged[name] = None
            else:
                merged[name] = result
        return merged
