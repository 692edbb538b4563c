"""Human-readable run log kept next to the results of a session."""

from pathlib import Path
from typing import Any

from llmsweep.models.run_models import RunRecord
from llmsweep.utils.logger import Logger

LOGGER_NAME = "runner.session"


class SessionLog:
    """Timestamped session narrative appended to ``run_log.txt``.

    Messages also reach the console through the normal ``llmsweep`` logger.
    A resumed session appends to the existing file, so the log shows every
    start, resume and completion of the output directory.

    Example:
        >>> with SessionLog("out/run_log.txt") as session:
        ...     session.started(resumed=False, cells=12, environment=env)
        ...     session.finished("completed")
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._handler = None
        self._logger = Logger.get(LOGGER_NAME)

    def open(self) -> None:
        if self._handler is None:
            self._handler = Logger.attach_file(LOGGER_NAME, self.path)

    def close(self) -> None:
        if self._handler is not None:
            Logger.detach(self._handler, LOGGER_NAME)
            self._handler = None

    def __enter__(self) -> "SessionLog":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def started(self, resumed: bool, cells: int, environment: dict[str, Any]) -> None:
        verb = "resumed" if resumed else "started"
        self._logger.info(f"=== Session {verb}: {cells} cells ===")
        for key, value in environment.items():
            if key == "gpus":
                for gpu in value or []:
                    self._logger.info(
                        f"  gpu[{gpu['index']}]: {gpu['model']} ({gpu['memory_gb']} GB)"
                    )
            else:
                self._logger.info(f"  {key}: {value}")

    def cell(self, record: RunRecord) -> None:
        """Completion marker for one cell."""
        state = "COMPLETED" if record.ran_this_time else "SKIPPED"
        rate = record.metrics.eval_rate_tps
        line = (
            f"{state} {record.model}/{record.prompt_id}/run{record.repeat_index:02d} "
            f"mode={record.mode} eval_rate={'-' if rate is None else f'{rate:.2f}'}"
        )
        if record.parse_warnings:
            line += f" warnings={';'.join(sorted(record.parse_warnings))}"
        self._logger.info(line)

    def finished(self, status: str, executed: int = 0, skipped: int = 0) -> None:
        self._logger.info(
            f"=== Session {status}: {executed} executed, {skipped} resumed ==="
        )
