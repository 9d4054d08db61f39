"""Inference provider interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class InferenceProvider(ABC):
    """Abstract interface for the video generation backend.

    predict() is synchronous and may block for tens of seconds; the
    orchestrator runs it in a thread executor.
    """

    @abstractmethod
    def predict(
        self,
        endpoint: str,
        instances: List[Dict[str, Any]],
        parameters: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Run one prediction. Each returned prediction carries either
        inline `bytesBase64Encoded` video data or a `gcsUri` locator."""
        ...

    @abstractmethod
    def endpoint(self) -> str:
        """Fully qualified model endpoint for predict()."""
        ...
