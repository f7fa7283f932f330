from app.bootstrap import build_pipeline
from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.logging.logger import Log
from app.worker.recovery import RecoveryRunner
from app.worker.worker import Worker


def _uses_postgres(settings: Settings) -> bool:
    return "postgres" in (settings.document_store.lower(), settings.notifier_backend.lower())


def main() -> None:
    """Entry point: initialize pool -> build pipeline -> start recovery loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    if _uses_postgres(settings):
        init_pool(settings)

    pipeline = build_pipeline(settings)
    try:
        runner = RecoveryRunner(
            doc_repo=pipeline.doc_repo,
            dispatcher=pipeline.dispatcher,
            notifier=pipeline.notifier,
            stale_upload_seconds=settings.stale_upload_seconds,
            recognition_timeout_seconds=settings.recognition_timeout_seconds,
        )
        worker = Worker(runner, settings.worker_poll_interval_seconds)
        worker.run()
    finally:
        pipeline.close()
        close_pool()


if __name__ == "__main__":
    main()
