"""Agent Tool 모듈.

Azure AI Search 기반 근거 검색 협력자를 제공합니다.
"""

from .evidence_search import AzureSearchEvidenceProvider, build_jurisdiction_filter
from .models import SearchDocument

__all__ = ["AzureSearchEvidenceProvider", "SearchDocument", "build_jurisdiction_filter"]
