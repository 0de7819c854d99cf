"""
Parser backend interface.

The escalation controller holds an ordered list of ParserBackend objects and
never looks at their concrete classes.
"""
from abc import ABC, abstractmethod
from typing import Optional

from core.models import BackendName, OCRResult, ParsedRecipe


class ParserBackend(ABC):
    """
    One strategy for turning OCR text into a recipe candidate.

    Attributes:
        name: Which backend this is
        timeout: Per-call time bound in seconds; None for backends that
            return immediately and need no bound
    """

    name: BackendName
    timeout: Optional[float] = None

    @abstractmethod
    async def try_parse(self, text: str, ocr_result: OCRResult) -> ParsedRecipe:
        """
        Produce a recipe candidate.

        Args:
            text: Normalized OCR text
            ocr_result: The original OCR result (confidence, blocks)

        Returns:
            Candidate with its confidence set

        Raises:
            BackendError: On any backend failure
        """
        pass

    @abstractmethod
    async def check_available(self) -> bool:
        """Probe whether the backend can currently serve requests."""
        pass

    async def close(self):
        """Release resources held by the backend."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name.value})"
