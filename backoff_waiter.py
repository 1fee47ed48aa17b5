# File: backoff_waiter.py
"""
backoff_waiter.py

Blocking exponential-backoff poll: sleep, check the predicate, double the delay, repeat
until the predicate holds or the schedule's total budget is used up. The last sleep is
clamped so the total wait never goes past max_total_wait.

With the default schedule (5s, x2, 180s) and a predicate that never holds, the sleeps are
5, 10, 20, 40, 80 and a final 25 seconds.
"""
import threading
import time


class BackoffWaiter:
    def __init__(self, stop_event=None, sleep=None, clock=time.monotonic):
        self._stop = stop_event or threading.Event()
        # default sleep wakes up early when a shutdown is requested
        self._sleep = sleep or self._stop.wait
        self._clock = clock

    def wait_until(self, predicate, schedule) -> bool:
        start = self._clock()
        delay = schedule.initial_delay
        while not self._stop.is_set():
            remaining = schedule.max_total_wait - (self._clock() - start)
            if remaining <= 0:
                return False
            self._sleep(min(delay, remaining))
            if self._stop.is_set():
                return False
            if predicate():
                return True
            delay *= schedule.multiplier
        return False
