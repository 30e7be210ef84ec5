"""
Scoped changes on remote logic app state.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


@asynccontextmanager
async def temporary_state(
    setup: Optional[Callable[[], Awaitable[None]]],
    teardown: Callable[[], Awaitable[None]]
) -> AsyncIterator[None]:
    """
    Apply a remote change for the duration of an ``async with`` block.

    ``setup`` runs on entry; ``teardown`` runs on every exit path once setup
    has completed, including when the block raises. A failing setup is not
    torn down. Pass ``setup=None`` when the change was already applied.

    Example:
        async with temporary_state(client.enable, client.disable):
            await client.run()
    """
    if setup is not None:
        await setup()

    try:
        yield
    finally:
        logger.debug("Reverting temporary logic app state")
        await teardown()
