import asyncio
import contextlib
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.services.manager import BaseAsyncLoggingService

LOG_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}

# -------------------------------------------------------------- #
# Async Logging Service
# -------------------------------------------------------------- #


class AsyncLoggingService(BaseAsyncLoggingService):
    """File logger for the services layer.

    Lines go onto a queue; one writer task appends whatever has piled up in a
    single file write. ``on_close`` writes out anything still queued.
    """

    def __init__(
        self,
        context: "Context",
        log_dir: str = "logs",
        log_file: str | None = None,
        use_timestamp: bool = True,
        console_output: bool = True,
        min_level: str = "DEBUG",
    ):
        super().__init__(context)
        if min_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {min_level}")

        if log_file is None:
            stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            log_file = f"app_{stamp}.log" if use_timestamp else "app.log"

        # Path() keeps an absolute log_file as-is
        self.log_path = Path(log_dir) / log_file
        self.console_output = console_output
        self.min_level = min_level

        # None asks the writer to stop after what is already queued
        self._pending: asyncio.Queue[str | None] = asyncio.Queue()
        self._writer: asyncio.Task | None = None

    async def on_start(self, services) -> None:
        await super().on_start(services)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._writer = asyncio.create_task(self._drain_forever())
        await self.info(f"Logging to {self.log_path} (min level {self.min_level})")

    async def on_close(self) -> None:
        await super().on_close()
        if self._writer is not None:
            self._pending.put_nowait(None)
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None
        await self._append(self._take_pending())

    # -------------------------------------------------------------- #
    # Logging API
    # -------------------------------------------------------------- #

    def is_enabled_for(self, level: str) -> bool:
        return LOG_LEVELS.get(level, 0) >= LOG_LEVELS[self.min_level]

    async def log(self, message: str, level: str = "INFO") -> None:
        if self.is_enabled_for(level):
            self._pending.put_nowait(f"[{datetime.now().isoformat()}] [{level}] {message}")

    async def debug(self, message: str) -> None:
        await self.log(message, "DEBUG")

    async def info(self, message: str) -> None:
        await self.log(message, "INFO")

    async def warning(self, message: str) -> None:
        await self.log(message, "WARNING")

    async def error(self, message: str) -> None:
        await self.log(message, "ERROR")

    async def critical(self, message: str) -> None:
        await self.log(message, "CRITICAL")

    # -------------------------------------------------------------- #
    # Writer
    # -------------------------------------------------------------- #

    def _take_pending(self) -> list[str | None]:
        lines: list[str | None] = []
        while not self._pending.empty():
            lines.append(self._pending.get_nowait())
        return lines

    async def _drain_forever(self) -> None:
        while True:
            batch = [await self._pending.get(), *self._take_pending()]
            await self._append(batch)
            if None in batch:
                return

    async def _append(self, batch: list[str | None]) -> None:
        lines = [line for line in batch if line is not None]
        if not lines:
            return
        if self.console_output:
            print("\n".join(lines), file=sys.stdout, flush=True)
        try:
            async with aiofiles.open(self.log_path, mode="a", encoding="utf-8") as f:
                await f.write("".join(line + "\n" for line in lines))
        except OSError as e:
            print(f"[ERROR] Failed to write to log file: {e}", file=sys.stderr, flush=True)
