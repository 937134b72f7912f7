import asyncio

from services.store_index_sync.SyncService import SyncService
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import GatewayError


class SyncScheduler:
    """Runs a full sweep on a fixed interval as a background asyncio task.

    A failed sweep is logged and the loop carries on with the next tick.
    """

    def __init__(self, helper_config: HelperConfig, sync_service: SyncService) -> None:
        self.logging = helper_config.get_logger()
        self._sync_service = sync_service
        self.enabled = helper_config.get_bool_val("SYNC_ENABLED", default=True)
        self.interval_seconds = float(helper_config.get_number_val("SYNC_INTERVAL_SECONDS", default=3600))
        self.run_on_startup = helper_config.get_bool_val("SYNC_ON_STARTUP", default=False)
        self._task: asyncio.Task | None = None

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.enabled:
            self.logging.info("Scheduled sync disabled (SYNC_ENABLED=false).")
            return
        if self.is_running():
            return
        self.logging.info("Scheduled sync every %.0f seconds.", self.interval_seconds)
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            self.logging.exception("Scheduled sync task had stopped with an error.")
        self._task = None
        self.logging.info("Scheduled sync stopped.")

    async def run_once(self) -> None:
        """Run one sweep, logging instead of raising backend failures."""
        try:
            report = await self._sync_service.do_sync_all()
        except GatewayError as exc:
            self.logging.error("Scheduled sync failed: %s", exc)
            return
        except Exception:
            self.logging.exception("Scheduled sync failed unexpectedly.")
            return
        if report.failed:
            self.logging.warning("Scheduled sync skipped %d document(s): %s", report.failed, report.failed_ids)

    async def _run(self) -> None:
        if self.run_on_startup:
            await self.run_once()
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
