'''Voting rounds: proposal and nomination catalogs, ballots and tallies.

A round holds two independently tallied catalogs:

-   **Proposals** - each ballot takes a stance on every proposal: agree,
    disagree or abstain (:class:`VoteOption`). A proposal tallies the weight
    of each stance separately plus the total weight cast on it.
-   **Nominations** - each ballot selects exactly
    :attr:`VotingRound.nomination_select_limit` distinct nominations and adds
    its weight to each of them.

The catalogs can only be edited while the round has not started
(:attr:`RoundStatus.NOT_YET`); ballots are only accepted while it is
:attr:`RoundStatus.OPEN`. The owner may move the round between statuses in
any order.

The weight of a ballot is the voter's current weight in the identity ledger
the round was initialized with. A voter that delegated its weight cannot vote
directly and every address votes at most once per round. A ballot is checked
completely before any tally changes, so a rejected ballot leaves the round
untouched.
'''

from __future__ import annotations

import abc
import dataclasses
import enum
import logging
from fractions import Fraction
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import votechain.util
from votechain.auth import Authority, as_authority
from votechain.errors import (
    AlreadyInitialized, AlreadyVoted, CallerHasDelegated,
    DuplicateNominationIndex, DuplicateProposalIndex, EmptyContent,
    EmptyInput, InvalidIndex, InvalidNominationIndex, InvalidOption,
    InvalidProposalIndex, InvalidSelectLimit, InvalidStatus, LengthMismatch,
    NominationCountMismatch, NoVotingWeight, NotInitialized,
    ProposalCountMismatch, RoundNotOpen, RoundStarted, ValidationError,
)
from votechain.persist import deserialize_value, scoped_class_name, \
    serialize_value, simple_serialization
from votechain.util import AddressLike, to_address

ContentLike = Union[bytes, bytearray, str]


class RoundStatus(enum.IntEnum):
    NOT_YET = 0
    PAUSED = 1
    OPEN = 2
    CLOSED = 3


class VoteOption(enum.IntEnum):
    '''Stance of a ballot on a single proposal.'''
    AGREE = 0
    DISAGREE = 1
    ABSTAIN = 2


class WeightSource(metaclass=abc.ABCMeta):
    '''Anything that resolves voting weight and delegation of an address.

    The subclass check is overridden so that any class providing both
    ``current_weight`` and ``delegated_to`` methods is accepted, such as
    a :class:`votechain.identity.IdentityLedger`.
    '''
    @abc.abstractmethod
    def current_weight(self, address: AddressLike) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def delegated_to(self, address: AddressLike) -> Optional[str]:
        raise NotImplementedError

    @classmethod
    def __subclasshook__(cls, subcl):
        if cls is WeightSource:
            return (
                callable(getattr(subcl, 'current_weight', None))
                and callable(getattr(subcl, 'delegated_to', None))
            )
        return NotImplemented


@simple_serialization
@dataclasses.dataclass
class Proposal:
    '''A proposal and its tallies.

    :param index: 1-based position in the round catalog.
    :param content: Opaque payload describing the proposal.
    :param flag: Opaque per-proposal configuration bit, stored as given.
    :param total_vote: Total weight cast on the proposal.
    :param agree: Weight cast in agreement.
    :param disagree: Weight cast in disagreement.
    :param abstain: Weight cast as abstention.
    '''
    index: int
    content: bytes
    flag: bool = False
    total_vote: int = 0
    agree: int = 0
    disagree: int = 0
    abstain: int = 0


@simple_serialization
@dataclasses.dataclass
class Nomination:
    '''A nomination and the total weight of ballots selecting it.'''
    index: int
    content: bytes
    total_vote: int = 0


@simple_serialization
@dataclasses.dataclass(frozen=True)
class ProposalVote:
    '''A ballot's stance on one proposal.'''
    index: int
    option: VoteOption

    @classmethod
    def coerce(cls, value: Any) -> ProposalVote:
        '''Build a vote from a ProposalVote, a mapping or an (index, option)
        pair.

        :raises InvalidOption: If the option is not a :class:`VoteOption`.
        :raises ValidationError: If the value has none of the accepted shapes.
        '''
        if isinstance(value, ProposalVote):
            index, option = value.index, value.option
        elif hasattr(value, 'keys'):
            try:
                index, option = value['index'], value['option']
            except KeyError as e:
                raise ValidationError(
                    f'malformed proposal vote: {value!r}'
                ) from e
        else:
            try:
                index, option = value
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f'malformed proposal vote: {value!r}'
                ) from e
        if isinstance(option, bool):
            raise InvalidOption(option, index)
        try:
            option = VoteOption(option)
        except ValueError as e:
            raise InvalidOption(option, index) from e
        return cls(index, option)


@simple_serialization
@dataclasses.dataclass(frozen=True)
class ProposalResult:
    index: int
    agree: int
    disagree: int
    abstain: int
    total_vote: int

    @property
    def agree_share(self) -> Fraction:
        '''Share of the total weight that agreed; zero if nothing was cast.'''
        if not self.total_vote:
            return Fraction(0)
        return Fraction(self.agree, self.total_vote)


@simple_serialization
@dataclasses.dataclass(frozen=True)
class NominationResult:
    index: int
    content: bytes
    total_vote: int


OPTION_BUCKETS: Dict[VoteOption, str] = {
    VoteOption.AGREE: 'agree',
    VoteOption.DISAGREE: 'disagree',
    VoteOption.ABSTAIN: 'abstain',
}


def _as_content(value: ContentLike) -> bytes:
    if isinstance(value, str):
        return value.encode('utf8')
    elif isinstance(value, (bytes, bytearray)):
        return bytes(value)
    else:
        raise TypeError(f'content must be bytes, got {value!r}')


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_parallel(first: List[Any], second: List[Any]) -> None:
    if not first or not second:
        raise EmptyInput()
    if len(first) != len(second):
        raise LengthMismatch(len(first), len(second))


def _check_contents(contents: List[bytes]) -> None:
    for i, content in enumerate(contents):
        if not content:
            raise EmptyContent(i)


class VotingRound:
    '''A single round of weighted voting on proposals and nominations.

    A round is created uninitialized; :meth:`initialize` wires it to its
    owner and to the identity ledger resolving voting weight. Rounds are
    normally created and initialized by a
    :class:`votechain.factory.RoundFactory`.

    :param address: Address of the round.
    '''
    def __init__(self, address: AddressLike):
        self.address = to_address(address)
        self._authority: Optional[Authority] = None
        self._ledger: Optional[WeightSource] = None
        self._status = RoundStatus.NOT_YET
        self._proposals: List[Proposal] = []
        self._nominations: List[Nomination] = []
        self._select_limit = 0
        self._voters: Dict[str, None] = {}

    def initialize(self,
                   owner: Union[Authority, AddressLike],
                   ledger: WeightSource,
                   ) -> None:
        '''Set the owning authority and the ledger, once.

        :param owner: Authority for owner-only operations, or the owner
            address.
        :param ledger: Source of voting weight and delegation state; kept as
            a plain reference.
        :raises AlreadyInitialized: If the round was initialized before.
        '''
        if self._authority is not None:
            raise AlreadyInitialized()
        if not isinstance(ledger, WeightSource):
            raise TypeError(f'{ledger!r} cannot resolve voting weight')
        self._authority = as_authority(owner)
        self._ledger = ledger
        logging.debug('round %s initialized with owner %r',
                      self.address, self._authority)

    @property
    def initialized(self) -> bool:
        return self._authority is not None

    @property
    def authority(self) -> Optional[Authority]:
        return self._authority

    @property
    def ledger(self) -> Optional[WeightSource]:
        return self._ledger

    @property
    def status(self) -> RoundStatus:
        return self._status

    @property
    def total_proposals(self) -> int:
        return len(self._proposals)

    @property
    def total_nominations(self) -> int:
        return len(self._nominations)

    @property
    def nomination_select_limit(self) -> int:
        return self._select_limit

    def _check_owner(self, sender: AddressLike) -> None:
        if self._authority is None:
            raise NotInitialized()
        self._authority.check(sender)

    def _check_editable(self, sender: AddressLike) -> None:
        self._check_owner(sender)
        if self._status != RoundStatus.NOT_YET:
            raise RoundStarted(self._status)

    def set_status(self, sender: AddressLike, status: RoundStatus) -> None:
        '''Move the round to any status.

        :raises InvalidStatus: If the status is not a :class:`RoundStatus`.
        '''
        self._check_owner(sender)
        if isinstance(status, bool):
            raise InvalidStatus(status)
        try:
            status = RoundStatus(status)
        except ValueError as e:
            raise InvalidStatus(status) from e
        logging.info('round %s status %s -> %s',
                     self.address, self._status.name, status.name)
        self._status = status

    def add_proposals(self,
                      sender: AddressLike,
                      contents: Iterable[ContentLike],
                      flags: Iterable[bool],
                      ) -> List[int]:
        '''Append proposals to the catalog.

        :param contents: Proposal payloads.
        :param flags: Configuration bit of each proposal, parallel to
            contents.
        :returns: Indices assigned to the new proposals.
        :raises RoundStarted: If the round is not in the initial status.
        :raises EmptyInput: If either list is empty.
        :raises LengthMismatch: If the lists differ in length.
        :raises EmptyContent: If any payload is empty.
        '''
        self._check_editable(sender)
        contents = [_as_content(content) for content in contents]
        flags = [bool(flag) for flag in flags]
        _check_parallel(contents, flags)
        _check_contents(contents)
        start = len(self._proposals) + 1
        for offset, (content, flag) in enumerate(zip(contents, flags)):
            self._proposals.append(Proposal(start + offset, content, flag))
        logging.info('round %s: added %d proposals',
                     self.address, len(contents))
        return list(range(start, start + len(contents)))

    def update_proposals(self,
                         sender: AddressLike,
                         contents: Iterable[ContentLike],
                         indices: Iterable[int],
                         ) -> None:
        '''Overwrite the content of existing proposals.

        :raises InvalidIndex: If any index is outside the catalog.
        '''
        self._check_editable(sender)
        contents = [_as_content(content) for content in contents]
        indices = list(indices)
        _check_parallel(contents, indices)
        for index in indices:
            self._check_index(index, self.total_proposals, InvalidIndex)
        for content, index in zip(contents, indices):
            self._proposals[index - 1].content = content
        logging.info('round %s: updated proposals %s', self.address, indices)

    def add_nominations(self,
                        sender: AddressLike,
                        contents: Iterable[ContentLike],
                        ) -> List[int]:
        '''Append nominations to the catalog.

        :returns: Indices assigned to the new nominations.
        :raises RoundStarted: If the round is not in the initial status.
        :raises EmptyInput: If the list is empty.
        :raises EmptyContent: If any payload is empty.
        '''
        self._check_editable(sender)
        contents = [_as_content(content) for content in contents]
        if not contents:
            raise EmptyInput()
        _check_contents(contents)
        start = len(self._nominations) + 1
        for offset, content in enumerate(contents):
            self._nominations.append(Nomination(start + offset, content))
        logging.info('round %s: added %d nominations',
                     self.address, len(contents))
        return list(range(start, start + len(contents)))

    def update_nominations(self,
                           sender: AddressLike,
                           contents: Iterable[ContentLike],
                           indices: Iterable[int],
                           ) -> None:
        self._check_editable(sender)
        contents = [_as_content(content) for content in contents]
        indices = list(indices)
        _check_parallel(contents, indices)
        for index in indices:
            self._check_index(index, self.total_nominations, InvalidIndex)
        for content, index in zip(contents, indices):
            self._nominations[index - 1].content = content
        logging.info('round %s: updated nominations %s',
                     self.address, indices)

    def set_nomination_select_limit(self, sender: AddressLike, n: int) -> None:
        '''Set how many nominations every ballot must select.

        :raises InvalidSelectLimit: If n is not a non-negative integer.
        '''
        self._check_owner(sender)
        if not _is_index(n) or n < 0:
            raise InvalidSelectLimit(n)
        self._select_limit = n
        logging.info('round %s: nomination select limit %d', self.address, n)

    def vote(self,
             sender: AddressLike,
             proposal_votes: Iterable[Any],
             nomination_indices: Iterable[int],
             ) -> int:
        '''Cast the sender's weighted ballot.

        :param proposal_votes: One :class:`ProposalVote` (or an equivalent
            pair or mapping) for every proposal in the catalog.
        :param nomination_indices: Exactly
            :attr:`nomination_select_limit` distinct nomination indices.
        :returns: The weight applied.
        :raises RoundNotOpen: If the round is not open.
        :raises ProposalCountMismatch: If the ballot does not cover every
            proposal.
        :raises NominationCountMismatch: If the ballot selects a wrong number
            of nominations.
        :raises NoVotingWeight: If the sender has no weight.
        :raises CallerHasDelegated: If the sender delegated its weight.
        :raises AlreadyVoted: If the sender voted in this round before.
        :raises InvalidProposalIndex: For an index outside the proposals.
        :raises DuplicateProposalIndex: For a proposal voted on twice.
        :raises InvalidOption: For an unknown proposal stance.
        :raises InvalidNominationIndex: For an index outside the nominations.
        :raises DuplicateNominationIndex: For a nomination selected twice.
        '''
        if self._ledger is None:
            raise NotInitialized()
        voter = to_address(sender)
        proposal_votes = list(proposal_votes)
        nomination_indices = list(nomination_indices)
        if self._status != RoundStatus.OPEN:
            raise RoundNotOpen(self._status)
        if len(proposal_votes) != self.total_proposals:
            raise ProposalCountMismatch(
                len(proposal_votes), self.total_proposals
            )
        if len(nomination_indices) != self._select_limit:
            raise NominationCountMismatch(
                len(nomination_indices), self._select_limit
            )
        weight = self._ledger.current_weight(voter)
        if weight == 0:
            raise NoVotingWeight(voter)
        delegate = self._ledger.delegated_to(voter)
        if delegate is not None:
            raise CallerHasDelegated(voter, delegate)
        if voter in self._voters:
            raise AlreadyVoted(voter)
        ballot = self._check_proposal_votes(proposal_votes)
        self._check_nomination_indices(nomination_indices)
        for pvote in ballot:
            proposal = self._proposals[pvote.index - 1]
            proposal.total_vote += weight
            bucket = OPTION_BUCKETS[pvote.option]
            setattr(proposal, bucket, getattr(proposal, bucket) + weight)
        for index in nomination_indices:
            self._nominations[index - 1].total_vote += weight
        self._voters[voter] = None
        logging.info('round %s: %s voted with weight %d',
                     self.address, voter, weight)
        return weight

    def _check_proposal_votes(self, votes: List[Any]) -> List[ProposalVote]:
        ballot = []
        seen = set()
        for value in votes:
            pvote = ProposalVote.coerce(value)
            self._check_index(
                pvote.index, self.total_proposals, InvalidProposalIndex
            )
            if pvote.index in seen:
                raise DuplicateProposalIndex(pvote.index)
            seen.add(pvote.index)
            ballot.append(pvote)
        return ballot

    def _check_nomination_indices(self, indices: List[int]) -> None:
        seen = set()
        for index in indices:
            self._check_index(
                index, self.total_nominations, InvalidNominationIndex
            )
            if index in seen:
                raise DuplicateNominationIndex(index)
            seen.add(index)

    @staticmethod
    def _check_index(index: Any, total: int, error: type) -> None:
        if not _is_index(index) or not 1 <= index <= total:
            raise error(index, total)

    def has_voted(self, address: AddressLike) -> bool:
        return to_address(address) in self._voters

    def voters(self) -> List[str]:
        '''Return the addresses that voted, in the order they voted.'''
        return list(self._voters)

    def proposal(self, index: int) -> Proposal:
        self._check_index(index, self.total_proposals, InvalidIndex)
        return dataclasses.replace(self._proposals[index - 1])

    def nomination(self, index: int) -> Nomination:
        self._check_index(index, self.total_nominations, InvalidIndex)
        return dataclasses.replace(self._nominations[index - 1])

    def all_proposals(self) -> List[Proposal]:
        return [dataclasses.replace(prop) for prop in self._proposals]

    def all_nominations(self) -> List[Nomination]:
        return [dataclasses.replace(nom) for nom in self._nominations]

    def result_of_proposal(self, index: int) -> ProposalResult:
        '''Return the tallies of a proposal.

        :raises InvalidIndex: If the index is outside the catalog.
        '''
        self._check_index(index, self.total_proposals, InvalidIndex)
        return self._proposal_result(self._proposals[index - 1])

    def result_of_nomination(self, index: int) -> NominationResult:
        '''Return the tally of a nomination.

        :raises InvalidIndex: If the index is outside the catalog.
        '''
        self._check_index(index, self.total_nominations, InvalidIndex)
        return self._nomination_result(self._nominations[index - 1])

    def all_results(self) -> Tuple[List[ProposalResult],
                                   List[NominationResult]]:
        '''Return the tallies of all proposals and of all nominations.'''
        return (
            [self._proposal_result(prop) for prop in self._proposals],
            [self._nomination_result(nom) for nom in self._nominations],
        )

    def ranked_nominations(self,
                           n: Optional[int] = None,
                           ) -> List[NominationResult]:
        '''Return nomination results, most supported first.

        Nominations with equal support keep their catalog order.

        :param n: Return only this many leading nominations.
        '''
        ordered = votechain.util.sorted_votes({
            nom.index: nom.total_vote for nom in self._nominations
        })
        if n is not None:
            ordered = ordered[:n]
        return [self.result_of_nomination(index) for index, _ in ordered]

    @staticmethod
    def _proposal_result(proposal: Proposal) -> ProposalResult:
        return ProposalResult(
            index=proposal.index,
            agree=proposal.agree,
            disagree=proposal.disagree,
            abstain=proposal.abstain,
            total_vote=proposal.total_vote,
        )

    @staticmethod
    def _nomination_result(nomination: Nomination) -> NominationResult:
        return NominationResult(
            index=nomination.index,
            content=nomination.content,
            total_vote=nomination.total_vote,
        )

    def to_dict(self) -> Dict[str, Any]:
        '''Snapshot the round.

        The owner and the ledger are not included; a restored round has to
        be initialized again.
        '''
        return {
            'class': scoped_class_name(self),
            'address': self.address,
            'status': serialize_value(self._status),
            'nomination_select_limit': self._select_limit,
            'proposals': serialize_value(self._proposals),
            'nominations': serialize_value(self._nominations),
            'voters': list(self._voters),
        }

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> VotingRound:
        voting = cls(params['address'])
        voting._status = RoundStatus(
            deserialize_value(params.get('status', RoundStatus.NOT_YET))
        )
        voting._select_limit = params.get('nomination_select_limit', 0)
        voting._proposals = deserialize_value(params.get('proposals', []))
        voting._nominations = deserialize_value(params.get('nominations', []))
        voting._voters = {
            to_address(voter): None for voter in params.get('voters', [])
        }
        return voting

    def __repr__(self):
        return f'VotingRound({self.address!r}, status={self._status.name})'
