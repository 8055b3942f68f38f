"""
MIMIC_REGENERATOR.PY - Periodic mimic regeneration

Every regenerate_interval_seconds a fresh mimic is generated from the
current settings and handed to a callback and/or an asyncio.Queue. A blank
DNS domain stops the loop for good; the caller has to fix the settings and
start again.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from mimic_engine import generate, MimicDomainRequiredError
from mimic_settings import MimicSettings, MimicResult
from securerand import SecureRandom, system_random
from tunnel_interface import ObfuscationFields

logger = logging.getLogger("MIMIC.REGEN")

ResultCallback = Callable[[MimicResult], None]
ErrorCallback = Callable[[Exception], None]
SleepFn = Callable[[float], Awaitable[None]]


class MimicRegenerator:
    """
    Cancellable regeneration task bound to the running event loop.

    on_result: called with each new MimicResult
    queue: optional asyncio.Queue receiving each new MimicResult
    on_error: called once if generation fails and the loop stops
    sleep: awaitable delay, replaceable in tests
    """

    def __init__(self, settings: MimicSettings,
                 on_result: Optional[ResultCallback] = None,
                 rng: Optional[SecureRandom] = None,
                 queue: Optional[asyncio.Queue] = None,
                 on_error: Optional[ErrorCallback] = None,
                 sleep: SleepFn = asyncio.sleep):
        self.settings = settings
        self.on_result = on_result
        self.rng = rng or system_random()
        self.queue = queue
        self.on_error = on_error
        self._sleep = sleep

        self.running = False
        self.last_error: Optional[Exception] = None
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    def start(self) -> Optional[asyncio.Task]:
        """
        Schedule the loop on the running event loop.

        Returns None (and schedules nothing) when the interval is not
        positive. Calling start on a live regenerator returns its task; after
        stop() or a fatal error a new task is scheduled.
        """
        if self.running and self._task is not None and not self._task.done():
            return self._task

        interval = self.settings.regenerate_interval_seconds
        if interval <= 0:
            logger.info(f"[REGEN] Interval {interval}s, periodic regeneration disabled")
            return None

        self.running = True
        self.last_error = None
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"[REGEN] Started {self.settings.type.name} regeneration every {interval}s")
        return self._task

    def stop(self):
        """Cancel the loop; a tick in flight is simply dropped"""
        self.running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("[REGEN] Stopped")

    async def join(self):
        """Wait for the current loop to finish after stop() or a fatal error"""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def update_settings(self, settings: MimicSettings):
        """
        New settings take effect from the next tick. A non-positive interval
        stops a running loop, the same way start() refuses one.
        """
        self.settings = settings
        interval = settings.regenerate_interval_seconds
        if interval <= 0 and self.running:
            logger.info(f"[REGEN] Interval {interval}s, periodic regeneration disabled")
            self.stop()

    def generate_now(self) -> MimicResult:
        """
        Generate and deliver one result immediately (initial apply, manual
        regenerate). Errors propagate to the caller.
        """
        result = generate(self.settings, self.rng)
        self._deliver(result)
        return result

    def _deliver(self, result: MimicResult):
        if self.on_result is not None:
            self.on_result(result)
        if self.queue is not None:
            try:
                self.queue.put_nowait(result)
            except asyncio.QueueFull:
                logger.warning("[REGEN] Result queue full, dropping result")

    def _fail(self, error: Exception):
        self.last_error = error
        self.running = False
        logger.error(f"[REGEN] {error!r}; regeneration stopped")
        if self.on_error is not None:
            self.on_error(error)

    async def _run(self):
        me = asyncio.current_task()
        # A restarted regenerator owns a new task; this one must not keep ticking
        while self.running and self._task is me:
            await self._sleep(self.settings.regenerate_interval_seconds)
            if not self.running or self._task is not me:
                break

            try:
                result = generate(self.settings, self.rng)
            except MimicDomainRequiredError as e:
                self._fail(e)
                return

            self.ticks += 1
            logger.debug(f"[REGEN] Tick {self.ticks}: itime={result.itime}")
            try:
                self._deliver(result)
            except Exception as e:
                self._fail(e)
                return


class InterfaceRegenerator(MimicRegenerator):
    """Regenerator that keeps a tunnel interface's obfuscation fields current"""

    def __init__(self, settings: MimicSettings,
                 fields: Optional[ObfuscationFields] = None,
                 rng: Optional[SecureRandom] = None,
                 on_error: Optional[ErrorCallback] = None,
                 sleep: SleepFn = asyncio.sleep):
        super().__init__(settings, on_result=self._apply, rng=rng,
                         on_error=on_error, sleep=sleep)
        self.fields = fields or ObfuscationFields()

    def _apply(self, result: MimicResult):
        self.fields = self.fields.apply_mimic_result(result)
