from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """API 입출력 공통 베이스 - JSON 키는 camelCase, 파이썬 필드는 snake_case"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """에러 응답 바디"""

    error: str = Field(..., description="에러 메시지")
    code: str = Field(..., description="에러 코드")
    details: Optional[Dict[str, Any]] = Field(None, description="추가 정보")


class DataSource(CamelModel):
    """응답 데이터를 실제로 제공한 저장소"""

    local: bool = True
    tapestry: bool = False
    social_data: bool = False
