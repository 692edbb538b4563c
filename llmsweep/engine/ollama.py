"""Ollama command line engine.

``ollama run <model> --verbose`` reads the prompt from stdin, prints the
response on stdout and the timing block on stderr; both streams go to the
transcript file.
"""

import subprocess
from pathlib import Path

from llmsweep.engine.base import EngineError, EngineResult, InferenceEngine
from llmsweep.utils.logger import Logger


class OllamaEngine(InferenceEngine):
    """Drive a local Ollama install through its CLI."""

    name = "ollama"

    def __init__(
        self,
        command: str = "ollama",
        extra_args: list[str] | None = None,
        control_timeout: float = 60.0,
    ) -> None:
        """Configure the engine.

        Args:
            command: ollama executable.
            extra_args: Extra arguments appended to every ``run``.
            control_timeout: Timeout for ``stop`` and ``--version`` calls.
        """
        self.command = command
        self.extra_args = list(extra_args or [])
        self.control_timeout = control_timeout
        self._logger = Logger.get("engine.ollama")

    def build_run_command(self, model: str) -> list[str]:
        """Return the argv for one benchmark invocation."""
        return [self.command, "run", model, "--verbose", *self.extra_args]

    def invoke(
        self,
        model: str,
        prompt: str,
        transcript_path: Path,
        timeout: float | None = None,
    ) -> EngineResult:
        """Run the prompt and capture stdout+stderr into the transcript."""
        transcript_path = Path(transcript_path)
        transcript_path.parent.mkdir(parents=True, exist_ok=True)

        with open(transcript_path, "w", encoding="utf-8") as transcript:
            try:
                proc = subprocess.Popen(
                    self.build_run_command(model),
                    stdin=subprocess.PIPE,
                    stdout=transcript,
                    stderr=subprocess.STDOUT,
                    text=True,
                )
            except (FileNotFoundError, PermissionError) as e:
                raise EngineError(f"Cannot launch {self.command}: {e}") from e

            try:
                proc.communicate(input=prompt, timeout=timeout)
            except subprocess.TimeoutExpired:
                self._logger.warning(
                    f"{model}: invocation exceeded {timeout}s, killing engine process"
                )
                proc.kill()
                proc.communicate()
                return EngineResult(exit_code=proc.returncode, timed_out=True)

        return EngineResult(exit_code=proc.returncode)

    def unload(self, model: str) -> bool:
        """Run ``ollama stop <model>``; any failure is logged and ignored."""
        try:
            result = subprocess.run(
                [self.command, "stop", model],
                capture_output=True,
                text=True,
                timeout=self.control_timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            self._logger.debug(f"Unload of {model} failed: {e}")
            return False

        if result.returncode != 0:
            self._logger.debug(
                f"Unload of {model} returned {result.returncode}: "
                f"{result.stderr.strip()}"
            )
            return False
        return True

    def version(self) -> str | None:
        """Return ``ollama --version`` output, or None if unavailable."""
        try:
            result = subprocess.run(
                [self.command, "--version"],
                capture_output=True,
                text=True,
                timeout=self.control_timeout,
            )
        except (subprocess.TimeoutExpired, OSError):
            return None
        output = (result.stdout or result.stderr).strip()
        return output or None
