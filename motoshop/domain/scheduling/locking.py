"""
Per-day booking locks

Booking commits and reassignments for the same calendar day run one at a
time inside this process. Slots of different types overlap (a 07:45
maintenance runs until 10:45), so the key is the whole day and not the start
time. Across processes the partial unique index on appointments is the guard.
"""

import threading
import weakref
from contextlib import contextmanager
from datetime import date


class DaySchedulingLocks:
    def __init__(self):
        self._guard = threading.Lock()
        # A day's lock lives only while some caller holds or waits on it
        self._locks: "weakref.WeakValueDictionary[date, threading.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, day: date) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(day)
            if lock is None:
                lock = threading.Lock()
                self._locks[day] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, day: date):
        lock = self.lock_for(day)
        with lock:
            yield


day_locks = DaySchedulingLocks()
