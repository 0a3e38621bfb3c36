"""
server.py — Embedded HTTP Server
===================================
Runs the FastAPI app on uvicorn inside the worker's event loop,
so the endpoint comes up and goes down together with the loop.

Signals belong to the process entrypoint: the embedded server never
installs handlers of its own, so a SIGTERM cannot close the listener
while a worker cycle is still running.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

logger = logging.getLogger(__name__)


class EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to its owner."""

    def install_signal_handlers(self) -> None:
        pass

    @contextmanager
    def capture_signals(self):
        yield


class HealthServer:
    """Start/stop wrapper around a programmatic uvicorn server."""

    def __init__(self, app: FastAPI, host: str, port: int):
        self.host = host
        self.port = port
        self._server = EmbeddedServer(
            uvicorn.Config(app, host=host, port=port, log_level="warning")
        )
        self._task: Optional[asyncio.Task] = None

    @property
    def serving(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Launch the server and wait until it accepts connections."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._server.serve())
        while not self._server.started:
            if self._task.done():
                task, self._task = self._task, None
                await task
                raise RuntimeError(
                    f"Server on {self.host}:{self.port} exited during startup"
                )
            await asyncio.sleep(0.01)
        logger.info("Listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._server.should_exit = True
        await self._task
        self._task = None
        logger.info("Stopped listening on %s:%d", self.host, self.port)
