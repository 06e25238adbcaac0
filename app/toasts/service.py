# app/toasts/service.py
"""
Cosmetic "someone just withdrew" notifications. Everything here is made up;
no balance or payment is touched.
"""
import asyncio
import contextlib
import logging
import random
import string
import time
from dataclasses import dataclass, asdict
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Withdrawal:
    id: str
    msisdn: str
    amount: int
    balance: int
    ref: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


def format_kes(amount: int) -> str:
    return f"KES {amount:,.0f}"


def random_masked_msisdn(rng: random.Random) -> str:
    last3 = str(rng.randint(0, 999)).zfill(3)
    prefix = rng.choice(["XX", "YY", "ZZ"])
    return f"2547{prefix}****{last3}"


def random_amount(rng: random.Random) -> int:
    base = rng.randint(10, 100) * 50
    return rng.choice([2500, 2500, 1000, 3000, base, base])


def random_ref(rng: random.Random) -> str:
    digits = "".join(rng.choice(string.digits) for _ in range(4))
    letters = "".join(rng.choice(string.ascii_uppercase) for _ in range(2))
    return f"TX{digits}{letters}"


def random_withdrawal(rng: Optional[random.Random] = None) -> Withdrawal:
    rng = rng or random.Random()
    msisdn = random_masked_msisdn(rng)
    amount = random_amount(rng)
    balance = rng.randint(0, 100)
    ref = random_ref(rng)
    message = f"{msisdn} withdrew {format_kes(amount)}. Balance: {format_kes(balance)}. Ref: {ref}"
    return Withdrawal(
        id=f"withdrawal-toast-{int(time.time() * 1000)}",
        msisdn=msisdn,
        amount=amount,
        balance=balance,
        ref=ref,
        message=message,
    )


Publish = Callable[[Withdrawal], Awaitable[None]]


class WithdrawalTicker:
    """Pushes one withdrawal right away, then one every `interval` seconds until stopped."""

    def __init__(self, publish: Publish, interval: float = 25.0, rng: Optional[random.Random] = None):
        self.publish = publish
        self.interval = interval
        self.rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def push(self) -> Withdrawal:
        w = random_withdrawal(self.rng)
        await self.publish(w)
        return w

    async def _run(self):
        while True:
            try:
                await self.push()
            except Exception:
                logger.exception("withdrawal toast publish failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("withdrawal toasts started (every %ss)", self.interval)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("withdrawal toasts stopped")

    async def aclose(self) -> None:
        """Stop and wait for the running task to unwind."""
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
