"""Translation service interface for the Glocal Adaptation Engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from ..models.leverage import LeverageResult, TMMatch


@dataclass
class TranslationRequest:
    """
    Input for one segment translation.

    ``tm_matches`` carries the memory candidates the engine already looked
    up, so a service can reuse them instead of querying again.
    """
    source_text: str
    source_language: str
    target_language: str
    domain_context: Optional[str] = None
    use_tm_leverage: bool = True
    project_id: Optional[str] = None
    segment_id: Optional[str] = None
    segment_type: Optional[str] = None
    tm_matches: List[TMMatch] = field(default_factory=list)

    def __post_init__(self):
        if self.tm_matches is None:
            self.tm_matches = []

    def to_payload(self) -> Dict[str, Any]:
        """Request body in the hosted function's camelCase shape."""
        return {
            "sourceText": self.source_text,
            "sourceLanguage": self.source_language,
            "targetLanguage": self.target_language,
            "therapeuticArea": self.domain_context,
            "useTMLeverage": self.use_tm_leverage,
            "projectId": self.project_id,
            "segmentId": self.segment_id,
        }


class ITranslationService(ABC):
    """
    Abstract interface for the generative translation function.

    Implementations return a ``LeverageResult`` or a mapping in the hosted
    function's response shape; the leverage engine validates either.
    """

    @abstractmethod
    async def translate(
        self, request: TranslationRequest
    ) -> Union[LeverageResult, Mapping[str, Any]]:
        """
        Translate one segment.

        Raises:
            Exception: Any failure; the engine reports it as unavailable.
        """
        pass

    @abstractmethod
    async def analyze(
        self,
        source_text: str,
        translated_text: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Return a word-level analysis of an existing translation."""
        pass
