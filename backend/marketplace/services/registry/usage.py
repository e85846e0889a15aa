# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Usage Recorder

Single responsibility: Record package-manager downloads (counter + analytics
event) as detached tasks that never block or fail the response.
"""

import asyncio
import logging
import re
from typing import Awaitable, Optional, Set

from marketplace.core.config import DEFAULT_PACKAGE_MANAGER_PATTERN
from marketplace.models.registry_models import AnalyticsEvent, RegistryNode
from .store import RegistryStore

logger = logging.getLogger(__name__)


class DetachedTaskRunner:
    """
    Spawns fire-and-forget tasks.

    Tasks are referenced until they finish so they are not garbage
    collected mid-flight. Failures are logged from a done-callback and never
    propagate. Nobody joins a task except drain(), which shutdown and tests
    use.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable, name: str) -> asyncio.Task:
        """
        Schedule a coroutine as a detached task.

        Args:
            coro: Coroutine to run
            name: Task name used in logs

        Returns:
            The scheduled task
        """
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"Detached task cancelled: {task.get_name()}")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Detached task failed: {task.get_name()}: {error}")
        else:
            logger.debug(f"Detached task completed: {task.get_name()}")

    async def drain(self, timeout: Optional[float] = None):
        """Wait for every pending task (failures are already logged)"""
        if not self._tasks:
            return
        await asyncio.wait(list(self._tasks), timeout=timeout)


class UsageRecorder:
    """Records downloads made by automated / package-manager clients"""

    def __init__(
        self,
        store: RegistryStore,
        runner: DetachedTaskRunner,
        package_manager_pattern: str = DEFAULT_PACKAGE_MANAGER_PATTERN
    ):
        """
        Initialize usage recorder.

        Args:
            store: Store implementing the usage write interface
            runner: Detached task runner
            package_manager_pattern: User-agent regex identifying package managers
        """
        self.store = store
        self.runner = runner
        self.package_manager_re = re.compile(package_manager_pattern, re.IGNORECASE)

    def is_package_manager(self, user_agent: Optional[str]) -> bool:
        return bool(user_agent) and self.package_manager_re.search(user_agent) is not None

    def record_usage(self, node: RegistryNode, user_agent: Optional[str]) -> bool:
        """
        Schedule the download counter increment and the analytics event.

        Args:
            node: Downloaded node
            user_agent: Request User-Agent header

        Returns:
            True if usage recording was scheduled
        """
        if not self.is_package_manager(user_agent):
            return False

        self.runner.spawn(
            self.store.increment_download_count(node.id, node.downloads_count),
            name=f"increment-downloads-{node.id}",
        )
        self.runner.spawn(
            self.store.append_analytics_event(AnalyticsEvent(component_id=node.id)),
            name=f"analytics-{node.id}",
        )
        return True
