'''Errors raised by the governance components.

Every rejected operation raises a subclass of :class:`GovernanceError`.
The classes are grouped into five categories that tell the caller what
kind of problem occurred:

-   :class:`AuthorizationError` - the sender does not hold the role the
    operation requires (e.g. it is not the owner).
-   :class:`StateError` - the operation is not allowed in the current state
    of the component (e.g. editing the catalog of a round that started).
-   :class:`ValidationError` - the arguments have an invalid shape or value
    (length mismatches, out of range indices, malformed addresses).
-   :class:`ConflictError` - the operation collides with something that was
    already recorded (a second vote, a repeated attestation).
-   :class:`IdentityError` - the sender's identity or weight does not allow
    the operation (invalid attestation signature, no voting weight).

Each concrete error has a stable :attr:`GovernanceError.code` identifier
that does not depend on the message text. Errors are raised before any
state is mutated, so a caught error means nothing has changed.
'''

import abc
from typing import Any, Optional


class GovernanceError(Exception, metaclass=abc.ABCMeta):
    '''An operation was rejected by a governance component.'''

    code: str = 'GovernanceError'
    '''Stable identifier of the error kind.'''

    default_message: str = 'operation rejected'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class AuthorizationError(GovernanceError):
    '''The sender is not authorized to perform the operation.'''
    code = 'AuthorizationError'


class StateError(GovernanceError):
    '''The operation is not valid in the current state.'''
    code = 'StateError'


class ValidationError(GovernanceError):
    '''An argument has an invalid shape or value.'''
    code = 'ValidationError'


class ConflictError(GovernanceError):
    '''The operation conflicts with previously recorded state.'''
    code = 'ConflictError'


class IdentityError(GovernanceError):
    '''The sender's identity or voting weight does not permit the operation.
    '''
    code = 'IdentityError'


class NotOwner(AuthorizationError):
    '''The sender is not the owner (or a member of the owning authority).

    :param sender: Address that attempted the operation.
    '''
    code = 'NotOwner'

    def __init__(self, sender: Any):
        self.sender = sender
        super().__init__(f'caller is not the owner: {sender}')


class NotInitialized(StateError):
    code = 'NotInitialized'
    default_message = 'not initialized'


class AlreadyInitialized(StateError):
    code = 'AlreadyInitialized'
    default_message = 'already initialized'


class RoundStarted(StateError):
    '''The round catalog can no longer be edited.

    :param status: Status the round is in.
    '''
    code = 'RoundStarted'

    def __init__(self, status: Any):
        self.status = status
        super().__init__(f'round already started (status {status!s})')


class RoundNotOpen(StateError):
    '''Votes are only accepted while the round is open.

    :param status: Status the round is in.
    '''
    code = 'RoundNotOpen'

    def __init__(self, status: Any):
        self.status = status
        super().__init__(f'round is not open (status {status!s})')


class EmptyInput(ValidationError):
    code = 'EmptyInput'
    default_message = 'empty input'


class LengthMismatch(ValidationError):
    '''Two argument lists that must be parallel have different lengths.'''
    code = 'LengthMismatch'

    def __init__(self, first: int, second: int):
        self.lengths = (first, second)
        super().__init__(f'invalid array length: {first} != {second}')


class EmptyContent(ValidationError):
    '''A catalog entry has empty content.

    :param position: Zero-based position of the entry in the argument list.
    '''
    code = 'EmptyContent'

    def __init__(self, position: int):
        self.position = position
        super().__init__(f'empty content at position {position}')


class InvalidIndex(ValidationError):
    '''An index is outside the 1-based range of the catalog.

    :param index: The index that was given.
    :param total: Number of entries in the catalog.
    '''
    code = 'InvalidIndex'
    what = 'index'

    def __init__(self, index: Any, total: int):
        self.index = index
        self.total = total
        super().__init__(
            f'invalid {self.what}: {index!r}, must be in [1, {total}]'
        )


class InvalidProposalIndex(InvalidIndex):
    code = 'InvalidProposalIndex'
    what = 'proposal index'


class InvalidNominationIndex(InvalidIndex):
    code = 'InvalidNominationIndex'
    what = 'nomination index'


class ProposalCountMismatch(ValidationError):
    '''A ballot must contain exactly one vote for every proposal.'''
    code = 'ProposalCountMismatch'

    def __init__(self, given: int, expected: int):
        self.given = given
        self.expected = expected
        super().__init__(
            f'invalid proposal length: {given}, must be {expected}'
        )


class NominationCountMismatch(ValidationError):
    '''A ballot must select exactly the configured number of nominations.'''
    code = 'NominationCountMismatch'

    def __init__(self, given: int, expected: int):
        self.given = given
        self.expected = expected
        super().__init__(
            f'invalid nomination length: {given}, must be {expected}'
        )


class InvalidAddress(ValidationError):
    code = 'InvalidAddress'

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f'invalid address: {value!r}')


class InvalidDigest(ValidationError):
    code = 'InvalidDigest'

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f'invalid 32-byte digest: {value!r}')


class InvalidBalance(ValidationError):
    code = 'InvalidBalance'

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f'invalid balance: {value!r}, must be uint256')


class InvalidStatus(ValidationError):
    code = 'InvalidStatus'

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f'invalid round status: {value!r}')


class InvalidOption(ValidationError):
    '''A proposal vote carries an option outside the known enumeration.'''
    code = 'InvalidOption'

    def __init__(self, value: Any, index: Any = None):
        self.value = value
        self.index = index
        message = f'invalid vote option: {value!r}'
        if index is not None:
            message += f' for proposal {index}'
        super().__init__(message)


class InvalidSelectLimit(ValidationError):
    code = 'InvalidSelectLimit'

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f'invalid nomination select limit: {value!r}')


class SelfDelegation(ValidationError):
    code = 'SelfDelegation'
    default_message = 'cannot delegate to yourself'


class AlreadyVoted(ConflictError):
    code = 'AlreadyVoted'

    def __init__(self, voter: Any):
        self.voter = voter
        super().__init__(f'cannot vote twice: {voter}')


class DuplicateProposalIndex(ConflictError):
    code = 'DuplicateProposalIndex'

    def __init__(self, index: int):
        self.index = index
        super().__init__(f'cannot vote twice for proposal {index}')


class DuplicateNominationIndex(ConflictError):
    code = 'DuplicateNominationIndex'

    def __init__(self, index: int):
        self.index = index
        super().__init__(f'cannot vote twice for nomination {index}')


class CallerAlreadyDelegated(ConflictError):
    code = 'CallerAlreadyDelegated'
    default_message = 'you had delegated'


class TargetAlreadyDelegated(ConflictError):
    code = 'TargetAlreadyDelegated'
    default_message = 'user had delegated'


class CallerAlreadyVoted(ConflictError):
    code = 'CallerAlreadyVoted'
    default_message = 'you had voted'


class TargetAlreadyVoted(ConflictError):
    code = 'TargetAlreadyVoted'
    default_message = 'user had voted'


class AddressAlreadyAttested(ConflictError):
    code = 'AddressAlreadyAttested'

    def __init__(self, address: Any):
        self.address = address
        super().__init__(f'address verified: {address}')


class EmailAlreadyAttested(ConflictError):
    code = 'EmailAlreadyAttested'
    default_message = 'email verified'


class InvalidSignature(IdentityError):
    code = 'InvalidSignature'
    default_message = 'invalid signature'


class NoVotingWeight(IdentityError):
    code = 'NoVotingWeight'

    def __init__(self, voter: Any):
        self.voter = voter
        super().__init__(f'no voting weight, cannot vote: {voter}')


class CallerHasDelegated(IdentityError):
    code = 'CallerHasDelegated'

    def __init__(self, voter: Any, delegate: Any):
        self.voter = voter
        self.delegate = delegate
        super().__init__(f'{voter} has delegated to {delegate}')


class CallerNotVerified(IdentityError):
    code = 'CallerNotVerified'
    default_message = 'you must verify balance first'


class TargetNotVerified(IdentityError):
    code = 'TargetNotVerified'
    default_message = "user haven't verified balance yet"
