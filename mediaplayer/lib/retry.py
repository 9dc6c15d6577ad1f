# mediaplayer
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Retry for endpoints that answer "202 Accepted" before the command is applied.

    ok = await send_until_applied(lambda: client.put())

200/204 → True.  202 → wait ``delay`` and resend, up to ``retries`` times,
then False (6 attempts in total by default).  Any other status raises
UnexpectedStatusError.  A transport error on a resend ends the sequence
with False; on the first attempt it propagates.  A started sequence runs
until it succeeds or the budget is spent.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from .errors import TransportError, UnexpectedStatusError
from .rest import RestResponse

log = logging.getLogger(__name__)

SUCCESS_CODES = (200, 204)
ACCEPTED = 202
MAX_RETRIES = 5
RETRY_DELAY = 5.25  # seconds


async def send_until_applied(
    send: Callable[[], Awaitable[RestResponse]],
    *,
    retries: int = MAX_RETRIES,
    delay: float | None = None,
    sleep: Callable[[float], Awaitable] = asyncio.sleep,
) -> bool:
    if delay is None:
        delay = RETRY_DELAY
    remaining = retries
    attempt = 0
    while True:
        attempt += 1
        try:
            response = await send()
        except TransportError as e:
            if attempt == 1:
                raise
            log.warning("Retry %d failed, giving up: %s", attempt - 1, e)
            return False

        status = response.status
        await response.release()

        if status in SUCCESS_CODES:
            return True
        if status != ACCEPTED:
            raise UnexpectedStatusError(status, str(response.url))
        if remaining <= 0:
            log.info("Command still pending after %d attempts", attempt)
            return False
        remaining -= 1
        log.debug("Accepted but not applied, retrying in %.2fs (%d left)", delay, remaining)
        await sleep(delay)
