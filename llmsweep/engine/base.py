"""Inference engine interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


class EngineError(Exception):
    """Raised when the engine cannot be started at all."""

    pass


@dataclass(frozen=True)
class EngineResult:
    """Outcome of one engine invocation.

    A non-zero ``exit_code`` or ``timed_out`` does not make the run invalid;
    whatever the transcript contains is still parsed.
    """

    exit_code: int | None
    timed_out: bool = False


class InferenceEngine(ABC):
    """An external engine that turns (model, prompt) into a transcript."""

    name: str = "engine"

    @abstractmethod
    def invoke(
        self,
        model: str,
        prompt: str,
        transcript_path: Path,
        timeout: float | None = None,
    ) -> EngineResult:
        """Run one prompt and write the full transcript to ``transcript_path``.

        Args:
            model: Model identifier understood by the engine.
            prompt: Complete prompt text (any context document already
                prepended).
            transcript_path: File that receives the engine's output.
            timeout: Seconds before the invocation is killed; None waits
                indefinitely.

        Raises:
            EngineError: If the engine executable cannot be launched.
        """
        ...

    @abstractmethod
    def unload(self, model: str) -> bool:
        """Best-effort release of a resident model.

        Returns:
            True if the engine confirmed the unload. Failures are never
            raised.
        """
        ...

    def version(self) -> str | None:
        """Engine version string for the run log, if known."""
        return None
