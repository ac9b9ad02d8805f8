"""Per-key asyncio locks that are created on demand and retired when idle."""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Optional


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        # Tasks holding or waiting for the lock.
        self.users = 0


class KeyedLock:
    """One independent asyncio.Lock per key.

    Operations on different keys never block each other. A key's lock is
    created on first use and dropped once no task holds or awaits it, unless
    ``keep(key)`` says the key is still live.

    Example:
        locks = KeyedLock()
        async with locks.hold("room-1"):
            ...
    """

    def __init__(self, keep: Optional[Callable[[str], bool]] = None) -> None:
        self._slots: Dict[str, _Slot] = {}
        self._keep = keep

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot()
        slot.users += 1
        try:
            async with slot.lock:
                yield
        finally:
            slot.users -= 1
            if slot.users == 0 and self._slots.get(key) is slot:
                if self._keep is None or not self._keep(key):
                    del self._slots[key]

    def __contains__(self, key: str) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)
