'''
Per-teacher serialization of ledger mutations inside one worker process.

Row locks (SELECT ... FOR UPDATE) cover concurrent workers on PostgreSQL;
this covers interleaved coroutines that share the process.
'''
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID

_teacher_locks: dict[UUID, asyncio.Lock] = {}
# holders + waiters per teacher; the lock is dropped when this reaches zero
_lock_users: dict[UUID, int] = {}

@asynccontextmanager
async def teacher_ledger_lock(teacher_id: UUID) -> AsyncIterator[None]:
    lock = _teacher_locks.setdefault(teacher_id, asyncio.Lock())
    _lock_users[teacher_id] = _lock_users.get(teacher_id, 0) + 1
    try:
        async with lock:
            yield
    finally:
        _lock_users[teacher_id] -= 1
        if _lock_users[teacher_id] == 0:
            del _lock_users[teacher_id]
            del _teacher_locks[teacher_id]
