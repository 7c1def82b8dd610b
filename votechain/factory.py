'''Round factory: creates voting rounds against a shared identity ledger.

The factory owns the registry of rounds it created, indexed from 1 in the
order of creation. It also designates the round the identity ledger consults
when it checks whether a participant has voted before accepting a
delegation: by default the most recently created round, or a round the owner
explicitly set as active.
'''

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from votechain.auth import Authority, as_authority
from votechain.errors import AlreadyInitialized, InvalidIndex, NotInitialized
from votechain.events import EventLog, Listener, RoundCreated
from votechain.persist import simple_serialization
from votechain.round import VotingRound, WeightSource
from votechain.util import AddressLike, create2_address, to_address

Template = Callable[..., VotingRound]


@simple_serialization
@dataclasses.dataclass(frozen=True)
class RoundMeta:
    '''Registry entry of a created round.

    :param index: Sequential 1-based index of the round.
    :param title: Opaque title payload.
    :param date: Date of the round, as given by the owner.
    :param round_address: Address of the round.
    '''
    index: int
    title: bytes
    date: int
    round_address: str


def template_id(template: Template) -> bytes:
    '''Return the bytes identifying a template for address derivation.'''
    name = '.'.join((
        getattr(template, '__module__', '') or '',
        getattr(template, '__qualname__', type(template).__qualname__),
    ))
    return name.encode('utf8')


class RoundFactory:
    '''Create and keep track of voting rounds.

    :param address: Address of the factory; round addresses are derived from
        it.
    :param authority: Authority for owner-only operations; a plain address is
        treated as a single owner. Created rounds are owned by the same
        authority.
    '''
    def __init__(self,
                 address: AddressLike,
                 authority: Union[Authority, AddressLike],
                 ):
        self.address = to_address(address)
        self.authority = as_authority(authority)
        self.template: Optional[Template] = None
        self.ledger: Optional[WeightSource] = None
        self.events = EventLog()
        self._initialized = False
        self._rounds: List[RoundMeta] = []
        self._instances: Dict[str, VotingRound] = {}
        self._active_index: Optional[int] = None

    def initialize(self, template: Template, ledger: WeightSource) -> None:
        '''Set the round template and the shared ledger, once.

        :param template: Callable creating a round from an address, normally
            the :class:`VotingRound` class.
        :param ledger: Identity ledger the created rounds resolve weight from.
        :raises AlreadyInitialized: If called a second time.
        '''
        if self._initialized:
            raise AlreadyInitialized()
        self._check_template(template)
        self._check_ledger(ledger)
        self.template = template
        self.ledger = ledger
        self._initialized = True
        logging.debug('factory %s initialized with template %r',
                      self.address, template)

    def set_template(self, sender: AddressLike, template: Template) -> None:
        self.authority.check(sender)
        self._check_template(template)
        self.template = template
        logging.info('factory %s template set to %r', self.address, template)

    def set_ledger(self, sender: AddressLike, ledger: WeightSource) -> None:
        self.authority.check(sender)
        self._check_ledger(ledger)
        self.ledger = ledger
        logging.info('factory %s ledger set to %r', self.address, ledger)

    @staticmethod
    def _check_template(template: Any) -> None:
        if not callable(template):
            raise TypeError(f'round template must be callable: {template!r}')

    @staticmethod
    def _check_ledger(ledger: Any) -> None:
        if not isinstance(ledger, WeightSource):
            raise TypeError(f'{ledger!r} cannot resolve voting weight')

    def create_voting(self,
                      sender: AddressLike,
                      title: bytes,
                      date: int,
                      ) -> RoundMeta:
        '''Create, initialize and register a new round.

        The round is initialized with the factory's authority and ledger.
        Nothing is registered and no event is emitted if its initialization
        fails.

        :param title: Opaque title payload.
        :param date: Date of the round.
        :returns: The registry entry of the new round.
        :raises NotInitialized: If the factory was not initialized.
        :raises AlreadyInitialized: If the template produced a round that
            was already initialized.
        '''
        self.authority.check(sender)
        if not self._initialized:
            raise NotInitialized()
        if isinstance(title, str):
            title = title.encode('utf8')
        elif not isinstance(title, (bytes, bytearray)):
            raise TypeError(f'round title must be bytes, got {title!r}')
        index = len(self._rounds) + 1
        address = create2_address(
            self.address, index, template_id(self.template)
        )
        voting = self.template(address=address)
        voting.initialize(self.authority, self.ledger)
        meta = RoundMeta(index, bytes(title), date, voting.address)
        self._rounds.append(meta)
        self._instances[voting.address] = voting
        logging.info('factory %s created round %d at %s',
                     self.address, index, voting.address)
        self.events.emit(RoundCreated(index, voting.address))
        return meta

    def all_rounds(self) -> List[RoundMeta]:
        return list(self._rounds)

    def round_at(self, index: int) -> RoundMeta:
        '''Return the registry entry of the round with the given index.

        :raises InvalidIndex: If no such round exists.
        '''
        self._check_index(index)
        return self._rounds[index - 1]

    def voting_at(self, index: int) -> VotingRound:
        '''Return the round object with the given index.'''
        return self._instances[self.round_at(index).round_address]

    def voting_by_address(self, address: AddressLike) -> VotingRound:
        address = to_address(address)
        if address not in self._instances:
            raise KeyError(f'no round at {address}')
        return self._instances[address]

    def set_active_round(self,
                         sender: AddressLike,
                         index: Optional[int],
                         ) -> None:
        '''Designate the round consulted by delegation checks.

        :param index: Index of the round, or None to follow the most
            recently created round.
        :raises InvalidIndex: If no round with the index exists.
        '''
        self.authority.check(sender)
        if index is not None:
            self._check_index(index)
        self._active_index = index
        logging.info('factory %s active round set to %s', self.address,
                     'latest' if index is None else index)

    def current_round(self) -> Optional[VotingRound]:
        '''Return the round consulted by delegation checks, if any.'''
        if self._active_index is not None:
            return self.voting_at(self._active_index)
        if self._rounds:
            return self.voting_at(len(self._rounds))
        return None

    def subscribe(self, listener: Listener) -> None:
        '''Call the listener with every future round creation event.'''
        self.events.subscribe(listener)

    def _check_index(self, index: Any) -> None:
        if (isinstance(index, bool) or not isinstance(index, int)
                or not 1 <= index <= len(self._rounds)):
            raise InvalidIndex(index, len(self._rounds))

    def __repr__(self):
        return f'RoundFactory({self.address!r}, rounds={len(self._rounds)})'
