import asyncio, json
from typing import AsyncIterator, Dict, Set


class EventHub:
    """
    Fan-out of (event, data) pairs to Server-Sent-Events subscribers.
    Rooms are storage origins: every client sharing an origin sees the same events.
    """

    def __init__(self, maxsize: int = 100):
        self.maxsize = maxsize
        # origin -> set of subscriber queues
        self._subs: Dict[str, Set[asyncio.Queue]] = {}

    def _get_room(self, room: str) -> Set[asyncio.Queue]:
        return self._subs.setdefault(room, set())

    def publish_nowait(self, room: str, event: str, data: dict):
        msg = (event, data)
        for q in list(self._subs.get(room, ())):
            try:
                q.put_nowait(msg)
            except asyncio.QueueFull:
                pass

    async def publish(self, room: str, event: str, data: dict):
        self.publish_nowait(room, event, data)

    def rooms(self) -> list[str]:
        return [r for r, subs in self._subs.items() if subs]

    async def subscribe(self, room: str) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._get_room(room).add(q)
        return q

    def unsubscribe(self, room: str, q: asyncio.Queue):
        subs = self._subs.get(room)
        if subs is None:
            return
        subs.discard(q)
        if not subs:
            del self._subs[room]

    async def stream(self, room: str) -> AsyncIterator[bytes]:
        """
        Yields Server-Sent Events for the given origin.
        """
        q = await self.subscribe(room)
        try:
            yield b": connected\n\n"
            while True:
                event, data = await q.get()
                yield format_event(event, data)
        except asyncio.CancelledError:
            # client disconnected
            pass
        finally:
            self.unsubscribe(room, q)


def format_event(event: str, data: dict) -> bytes:
    payload = f"event: {event}\n" + f"data: {json.dumps(data, ensure_ascii=False)}\n\n"
    return payload.encode("utf-8")
