"""근거 검색 데이터 모델"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SearchDocument(BaseModel):
    """규제 근거 검색 결과 문서 모델

    Azure AI Search 인덱스의 필드명과 일치하도록 설계되었습니다.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    title: str | None = None
    content: str | None = None
    jurisdiction: str | None = None
    source_type: str | None = None
    authority: str | None = None
    url: str | None = None
    trust_score: float | None = None
    last_updated: datetime | None = None
    score: float | None = None
