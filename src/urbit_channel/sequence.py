"""Request id allocation and event acknowledgment bookkeeping."""

from __future__ import annotations

import logging

from .protocol.commands import AckCommand

logger = logging.getLogger(__name__)


class RequestIdAllocator:
    """Hands out request ids 1, 2, 3, ... shared by every command kind."""

    def __init__(self, start: int = 1):
        self._next = start

    def next_id(self) -> int:
        request_id = self._next
        self._next += 1
        return request_id

    def peek(self) -> int:
        """The id the next call to next_id() will return."""
        return self._next


class AckTracker:
    """Tracks which server events have been seen and which were acked.

    The ship keeps every event it pushed in a per-channel queue until the
    client acks it. Acks ride along with the next outbound command instead
    of costing their own request.

    An ack counts as acknowledged as soon as it is put in a batch, so
    overlapping sends never carry the same ack twice. If the PUT carrying it
    fails, release_ack() makes it pending again.
    """

    def __init__(self) -> None:
        self.last_event_id = 0
        self.last_acknowledged_id = 0
        self._delivered = 0
        self._in_flight: set[int] = set()

    def observe(self, event_id: int) -> None:
        """Record the sequence id of an inbound event."""
        self.last_event_id = event_id

    def pending_ack(self) -> AckCommand | None:
        """The ack the next batch needs, or None if nothing is unacked."""
        if self.last_event_id == self.last_acknowledged_id:
            return None
        return AckCommand(event_id=self.last_event_id)

    def reserve_ack(self) -> AckCommand | None:
        """Take the pending ack for a batch about to be sent."""
        ack = self.pending_ack()
        if ack is None:
            return None
        self._in_flight.add(ack.event_id)
        self.last_acknowledged_id = ack.event_id
        return ack

    def confirm_ack(self, event_id: int) -> None:
        """The PUT carrying the ack for event_id succeeded."""
        self._in_flight.discard(event_id)
        self.mark_acknowledged(event_id)

    def release_ack(self, event_id: int) -> None:
        """The PUT carrying the ack for event_id failed.

        The acknowledged id falls back to the highest ack that was delivered
        or is still in flight.
        """
        self._in_flight.discard(event_id)
        fallback = max(self._in_flight, default=0)
        fallback = max(fallback, self._delivered)
        if fallback < self.last_acknowledged_id:
            logger.debug(f"Ack for {event_id} not delivered; pending again")
            self.last_acknowledged_id = fallback

    def mark_acknowledged(self, event_id: int) -> None:
        """Record that an ack carrying event_id reached the server."""
        self._delivered = max(self._delivered, event_id)
        if event_id > self.last_acknowledged_id:
            logger.debug(f"Acknowledged events up to {event_id}")
            self.last_acknowledged_id = event_id
