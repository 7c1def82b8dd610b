'''Authorization capabilities for owner-only operations.

Components do not hard-code who their owner is. Instead, they receive an
authority object at construction or initialization and ask it to check the
sender of every owner-only operation. This makes it possible to swap the
usual single-owner model for another one (such as a list of members)
without touching the components themselves.

An authority can be given as a plain address wherever one is accepted; it
is then wrapped in an :class:`OwnerAuthority` by :func:`as_authority`.
'''

import abc
from typing import Any, Iterable, Union

from votechain.errors import NotOwner
from votechain.persist import simple_serialization
from votechain.util import AddressLike, to_address


class Authority(metaclass=abc.ABCMeta):
    '''Decide whether a sender may perform an owner-only operation.

    Base class, not intended for direct use.
    '''
    @abc.abstractmethod
    def permits(self, sender: AddressLike) -> bool:
        '''Return True if the sender holds the authority.'''
        raise NotImplementedError

    def check(self, sender: AddressLike) -> None:
        '''Check the sender holds the authority.

        :raises NotOwner: If it does not.
        '''
        if not self.permits(sender):
            raise NotOwner(sender)


@simple_serialization
class OwnerAuthority(Authority):
    '''A single owner address holds the authority.

    :param owner: The owning address.
    '''
    def __init__(self, owner: AddressLike):
        self.owner = to_address(owner)

    def permits(self, sender: AddressLike) -> bool:
        return to_address(sender) == self.owner

    def __repr__(self):
        return f'OwnerAuthority({self.owner!r})'


@simple_serialization
class MemberAuthority(Authority):
    '''Any member of a fixed set of addresses holds the authority.

    :param members: The member addresses. Must not be empty.
    '''
    def __init__(self, members: Iterable[AddressLike]):
        self.members = sorted(set(to_address(member) for member in members))
        if not self.members:
            raise ValueError('member authority needs at least one member')

    def permits(self, sender: AddressLike) -> bool:
        return to_address(sender) in self.members

    def __repr__(self):
        return f'MemberAuthority({self.members!r})'


def as_authority(value: Union[Authority, AddressLike, Any]) -> Authority:
    '''Return the value if it is an authority, else an owner authority.'''
    if isinstance(value, Authority):
        return value
    return OwnerAuthority(value)
