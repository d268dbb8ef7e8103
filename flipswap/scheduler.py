# flipswap/scheduler.py
import asyncio
import time
from typing import Awaitable, Callable, Optional

from .models import Action, Stopped
from .strategy import TradeStateMachine

class Scheduler:
    """
    Drives the state machine at a fixed nominal interval.
    Sleeps only what is left of the interval after each tick; a slow tick
    is followed by no sleep at all, never by extra catch-up ticks.
    """
    def __init__(
        self,
        machine: TradeStateMachine,
        initial_action: Action,
        interval: float,
        observation_log_every: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if observation_log_every < 1:
            raise ValueError("observation_log_every must be >= 1")
        self.machine = machine
        self.action = initial_action
        self.interval = interval
        self.log_every = observation_log_every
        self.tick_count = 0  # position within the observation cycle
        self._clock = clock
        self._sleep = sleep

    def wants_observation(self) -> bool:
        return self.tick_count == 0

    def remaining_sleep(self, elapsed: float) -> float:
        return max(0.0, self.interval - elapsed)

    async def tick(self) -> Optional[Stopped]:
        """
        Runs one step plus the inter-tick wait. Returns Stopped if the step stopped.
        """
        start_tick = self._clock()
        result = await self.machine.step(self.action, self.wants_observation())
        if isinstance(result, Stopped):
            return result
        self.action = result

        elapsed = self._clock() - start_tick
        await self._sleep(self.remaining_sleep(elapsed))
        self.tick_count = (self.tick_count + 1) % self.log_every
        return None

    async def run(self, max_ticks: Optional[int] = None) -> Optional[Stopped]:
        """
        Loops until a step stops (or max_ticks run, for tests and dry runs).
        """
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            stopped = await self.tick()
            if stopped is not None:
                return stopped
            ticks += 1
        return None
