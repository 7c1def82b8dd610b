'''Notifications emitted by governance components for off-chain indexers.'''

import dataclasses
import logging
from typing import Any, Callable, List

from votechain.persist import simple_serialization


@simple_serialization
@dataclasses.dataclass(frozen=True)
class RoundCreated:
    '''A new voting round was created by a factory.

    :param index: Sequential 1-based index of the round in its factory.
    :param round_address: Address of the new round.
    '''
    index: int
    round_address: str


Listener = Callable[[Any], None]


class EventLog:
    '''An ordered log of emitted events with subscribed listeners.

    Listeners are called synchronously in subscription order, after the
    event is appended to the log. The emitting operation has already been
    committed by then, so a listener raising does not undo it; the error
    propagates to the caller of the emitting operation.
    '''
    def __init__(self):
        self._events: List[Any] = []
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def emit(self, event: Any) -> None:
        self._events.append(event)
        logging.debug('emitting %r to %d listeners',
                      event, len(self._listeners))
        for listener in list(self._listeners):
            listener(event)

    def __iter__(self):
        return iter(self._events)

    def __len__(self):
        return len(self._events)

    def __getitem__(self, item):
        return self._events[item]
