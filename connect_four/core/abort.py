"""
Abort Token - cooperative cancellation for a game session

Each session owns one token. Reset sets it; every suspended continuation of the
old session checks it when it wakes up and exits without touching state.
"""

import asyncio


class AbortToken:
    def __init__(self):
        self.signal = asyncio.Event()

    def set(self):
        """Mark the session as being discarded"""
        self.signal.set()

    @property
    def is_set(self) -> bool:
        return self.signal.is_set()

    async def wait(self):
        await self.signal.wait()
