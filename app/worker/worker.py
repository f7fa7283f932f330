import time

from app.logging.logger import Log
from app.worker.recovery import RecoveryRunner


class Worker:
    """Poll loop: sweep -> sleep."""

    def __init__(self, runner: RecoveryRunner, poll_interval_seconds: float) -> None:
        self._runner = runner
        self._poll_interval_seconds = poll_interval_seconds

    def run(self, max_cycles: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_cycles is set, stop after that many sweeps (for testing).
        """
        Log.info("Recovery worker started")
        cycles = 0
        try:
            while max_cycles is None or cycles < max_cycles:
                touched = self._try_sweep()
                cycles += 1
                if touched:
                    Log.info(f"Recovered {touched} document(s)")
                else:
                    Log.debug("Nothing to recover, sleeping")
                time.sleep(self._poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_sweep(self) -> int:
        """Run one recovery sweep. Gracefully handle DB errors."""
        try:
            return self._runner.run_once()
        except Exception as exc:
            Log.warning(f"Recovery sweep failed, will retry: {exc}")
            return 0
