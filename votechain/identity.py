'''Identity ledger: attested voting weight and one-level delegation.

Every participant obtains voting weight through an *attestation*: an
administrator signs a claim binding the participant's address to a balance
and to an identity digest (a hash of the participant's e-mail address, used
only to prevent the same person from being attested twice). The participant
submits the signed claim to :meth:`IdentityLedger.attest`; the ledger
recovers the signer from the signature and accepts the claim only if the
signer is an administrator.

An attested participant can delegate its weight to another attested
participant, once. Delegation is one level deep: weight delegated to an
address is never forwarded further, and an address that received weight
cannot delegate itself. The ledger refuses delegation from or to an address
that has already voted in the round designated by the bound round source
(normally a :class:`votechain.factory.RoundFactory`).

Attestation digests and signatures are Ethereum-compatible: the digest is
a keccak-256 hash of the packed claim prefixed with the ledger's domain
separator, and the signature is an EIP-191 personal message signature over
the digest, so claims can be produced by any standard Ethereum signer.
'''

from __future__ import annotations

import abc
import dataclasses
import logging
from typing import Any, Dict, List, Optional, Set, Union

import eth_abi
import eth_keys.exceptions
import eth_utils
from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct

from votechain.auth import Authority, as_authority
from votechain.errors import (
    AddressAlreadyAttested, CallerAlreadyDelegated, CallerAlreadyVoted,
    CallerNotVerified, EmailAlreadyAttested, InvalidSignature, SelfDelegation,
    TargetAlreadyDelegated, TargetAlreadyVoted, TargetNotVerified,
)
from votechain.persist import deserialize_value, scoped_class_name, \
    serialize_value, simple_serialization
from votechain.util import AddressLike, address_bytes, check_uint256, \
    keccak256, to_address, to_bytes32, uint256_bytes

DEFAULT_DOMAIN = 'verify'

SignatureLike = Union[bytes, str]

SIGNATURE_ERRORS = (
    ValueError,
    eth_keys.exceptions.BadSignature,
    eth_keys.exceptions.ValidationError,
)


@simple_serialization
@dataclasses.dataclass
class Account:
    '''Identity state of a single address.

    :param address: The account address.
    :param attested_balance: Weight granted by the attestation.
    :param email_hash: Identity digest bound by the attestation.
    :param delegated_to: Address the account delegated its weight to.
    :param is_admin: Whether the account may sign attestations.
    :param is_verified: Whether the account holds an attestation.
    '''
    address: str
    attested_balance: int = 0
    email_hash: Optional[bytes] = None
    delegated_to: Optional[str] = None
    is_admin: bool = False
    is_verified: bool = False


class VoteRecordSource(metaclass=abc.ABCMeta):
    '''Anything that can tell whether an address has voted.

    The subclass check is overridden so that any class providing
    a ``has_voted`` method is accepted, such as a
    :class:`votechain.round.VotingRound`.
    '''
    @abc.abstractmethod
    def has_voted(self, address: AddressLike) -> bool:
        raise NotImplementedError

    @classmethod
    def __subclasshook__(cls, subcl):
        if cls is VoteRecordSource:
            return callable(getattr(subcl, 'has_voted', None))
        return NotImplemented


class RoundSource(metaclass=abc.ABCMeta):
    '''Anything that designates the round consulted by delegation checks.

    The subclass check accepts any class providing a ``current_round``
    method, such as a :class:`votechain.factory.RoundFactory`.
    '''
    @abc.abstractmethod
    def current_round(self) -> Optional[VoteRecordSource]:
        '''Return the authoritative round, or None if there is none.'''
        raise NotImplementedError

    @classmethod
    def __subclasshook__(cls, subcl):
        if cls is RoundSource:
            return callable(getattr(subcl, 'current_round', None))
        return NotImplemented


def domain_separator(domain: str) -> bytes:
    '''Return the 32-byte separator for a domain label.'''
    return keccak256(domain.encode('utf8'))


def attestation_digest(separator: bytes,
                       subject: AddressLike,
                       balance: int,
                       email_hash: Union[bytes, str],
                       ) -> bytes:
    '''Compute the digest an administrator signs to attest a balance.

    :param separator: Domain separator of the ledger (32 bytes).
    :param subject: Address being attested.
    :param balance: Attested balance (uint256).
    :param email_hash: Identity digest (32 bytes).
    '''
    return keccak256(
        to_bytes32(separator)
        + address_bytes(subject)
        + uint256_bytes(balance)
        + to_bytes32(email_hash)
    )


def identity_digest(email: str) -> bytes:
    '''Hash an e-mail address into a 32-byte identity digest.

    The address is ABI-encoded as a string before hashing, which matches
    how off-chain tooling computes the digest.
    '''
    return keccak256(eth_abi.encode(['string'], [email]))


def sign_digest(private_key: Union[bytes, str], digest: bytes) -> bytes:
    '''Sign a 32-byte digest as an EIP-191 personal message.'''
    signed = EthAccount.sign_message(
        encode_defunct(primitive=to_bytes32(digest)),
        private_key=private_key,
    )
    return bytes(signed.signature)


def _signature_bytes(signature: SignatureLike) -> bytes:
    if isinstance(signature, str):
        try:
            signature = eth_utils.decode_hex(signature)
        except ValueError as e:
            raise InvalidSignature() from e
    if not isinstance(signature, (bytes, bytearray)) or len(signature) != 65:
        raise InvalidSignature()
    return bytes(signature)


def recover_signer(digest: bytes, signature: SignatureLike) -> str:
    '''Recover the address that signed the digest as a personal message.

    :param digest: The signed 32-byte digest.
    :param signature: 65 bytes ``r || s || v`` (raw or ``0x``-hex), with
        ``v`` either 0/1 or 27/28.
    :raises InvalidSignature: If the signature is malformed.
    '''
    signature = _signature_bytes(signature)
    if signature[64] not in (0, 1, 27, 28):
        raise InvalidSignature()
    message = encode_defunct(primitive=to_bytes32(digest))
    try:
        return to_address(
            EthAccount.recover_message(message, signature=signature)
        )
    except SIGNATURE_ERRORS as e:
        raise InvalidSignature() from e


def sign_attestation(private_key: Union[bytes, str],
                     subject: AddressLike,
                     balance: int,
                     email_hash: Union[bytes, str],
                     domain: str = DEFAULT_DOMAIN,
                     ) -> bytes:
    '''Produce an attestation signature as an administrator would.

    :param private_key: Key of the signing administrator.
    :param subject: Address being attested.
    :param balance: Attested balance.
    :param email_hash: Identity digest of the subject.
    :param domain: Domain label of the ledger the claim is meant for.
    '''
    return sign_digest(private_key, attestation_digest(
        domain_separator(domain), subject, balance, email_hash
    ))


class IdentityLedger:
    '''Per-address attested balances, administrators and delegations.

    :param address: Address of the ledger itself.
    :param authority: Authority allowed to manage administrators and to bind
        the round source; a plain address is treated as a single owner.
    :param domain: Domain label mixed into every attestation digest, so that
        claims signed for one ledger cannot be replayed on another.
    '''
    def __init__(self,
                 address: AddressLike,
                 authority: Union[Authority, AddressLike],
                 domain: str = DEFAULT_DOMAIN,
                 ):
        self.address = to_address(address)
        self.authority = as_authority(authority)
        self.domain = domain
        self.domain_separator = domain_separator(domain)
        self._accounts: Dict[str, Account] = {}
        self._delegators: Dict[str, List[str]] = {}
        self._email_hashes: Set[bytes] = set()
        self._round_source: Optional[RoundSource] = None

    @property
    def round_source(self) -> Optional[RoundSource]:
        return self._round_source

    def set_admin(self,
                  sender: AddressLike,
                  address: AddressLike,
                  is_admin: bool,
                  ) -> None:
        '''Grant or revoke the right to sign attestations.

        :raises NotOwner: If the sender does not hold the ledger authority.
        '''
        self.authority.check(sender)
        address = to_address(address)
        self._get_or_create(address).is_admin = bool(is_admin)
        logging.info('admin flag of %s set to %s', address, bool(is_admin))

    def set_round_factory(self,
                          sender: AddressLike,
                          source: RoundSource,
                          ) -> None:
        '''Bind the source of the round consulted by delegation checks.

        The ledger keeps a plain reference to the source and does not manage
        its lifetime.

        :raises NotOwner: If the sender does not hold the ledger authority.
        :raises TypeError: If the source does not provide ``current_round``.
        '''
        self.authority.check(sender)
        if not isinstance(source, RoundSource):
            raise TypeError(f'{source!r} cannot designate a current round')
        self._round_source = source
        logging.info('ledger %s bound to round source %r', self.address, source)

    def attestation_hash(self,
                         subject: AddressLike,
                         balance: int,
                         email_hash: Union[bytes, str],
                         ) -> bytes:
        '''Return the digest to sign to attest the subject on this ledger.'''
        return attestation_digest(
            self.domain_separator, subject, balance, email_hash
        )

    def attest(self,
               sender: AddressLike,
               balance: int,
               signature: SignatureLike,
               email_hash: Union[bytes, str],
               ) -> None:
        '''Record an administrator-signed attestation of the sender.

        :param sender: Address submitting (and being attested by) the claim.
        :param balance: Attested balance, becomes the sender's own weight.
        :param signature: Administrator signature over
            :meth:`attestation_hash` of the claim.
        :param email_hash: Identity digest of the sender.
        :raises InvalidSignature: If the signature is malformed or was not
            made by an administrator.
        :raises EmailAlreadyAttested: If the identity digest was used by any
            earlier attestation.
        :raises AddressAlreadyAttested: If the sender holds an attestation.
        '''
        sender = to_address(sender)
        balance = check_uint256(balance)
        email_hash = to_bytes32(email_hash)
        signer = recover_signer(
            self.attestation_hash(sender, balance, email_hash), signature
        )
        if not self.is_admin(signer):
            logging.debug('attestation of %s signed by non-admin %s',
                          sender, signer)
            raise InvalidSignature()
        if email_hash in self._email_hashes:
            raise EmailAlreadyAttested()
        if self.is_verified(sender):
            raise AddressAlreadyAttested(sender)
        account = self._get_or_create(sender)
        account.attested_balance = balance
        account.email_hash = email_hash
        account.is_verified = True
        self._email_hashes.add(email_hash)
        logging.info('attested %s with balance %d (signed by %s)',
                     sender, balance, signer)

    def delegate(self, sender: AddressLike, target: AddressLike) -> None:
        '''Delegate the sender's attested weight to the target.

        :raises SelfDelegation: If the target is the sender.
        :raises CallerNotVerified: If the sender holds no attestation.
        :raises TargetNotVerified: If the target holds no attestation.
        :raises CallerAlreadyDelegated: If the sender delegated before or
            received delegated weight itself.
        :raises TargetAlreadyDelegated: If the target delegated its weight.
        :raises CallerAlreadyVoted: If the sender voted in the current round.
        :raises TargetAlreadyVoted: If the target voted in the current round.
        '''
        sender = to_address(sender)
        target = to_address(target)
        if sender == target:
            raise SelfDelegation()
        if not self.is_verified(sender):
            raise CallerNotVerified()
        if not self.is_verified(target):
            raise TargetNotVerified()
        if self.delegated_to(sender) is not None or self.delegators_of(sender):
            raise CallerAlreadyDelegated()
        if self.delegated_to(target) is not None:
            raise TargetAlreadyDelegated()
        if self.has_voted_in_current_round(sender):
            raise CallerAlreadyVoted()
        if self.has_voted_in_current_round(target):
            raise TargetAlreadyVoted()
        self._accounts[sender].delegated_to = target
        self._delegators.setdefault(target, []).append(sender)
        logging.info('%s delegated %d to %s',
                     sender, self._accounts[sender].attested_balance, target)

    def current_weight(self, address: AddressLike) -> int:
        '''Return the address's own attested balance plus delegated balances.
        '''
        address = to_address(address)
        own = self.account(address).attested_balance
        return own + sum(
            self._accounts[delegator].attested_balance
            for delegator in self._delegators.get(address, [])
        )

    def current_balance(self, sender: AddressLike) -> int:
        '''Return the sender's current weight.'''
        return self.current_weight(sender)

    def has_voted_in_current_round(self, address: AddressLike) -> bool:
        if self._round_source is None:
            return False
        current = self._round_source.current_round()
        if current is None:
            return False
        return current.has_voted(address)

    def account(self, address: AddressLike) -> Account:
        '''Return a copy of the account record of the address.'''
        address = to_address(address)
        if address in self._accounts:
            return dataclasses.replace(self._accounts[address])
        return Account(address)

    def accounts(self) -> List[Account]:
        return [dataclasses.replace(acc) for acc in self._accounts.values()]

    def is_admin(self, address: AddressLike) -> bool:
        return self.account(address).is_admin

    def is_verified(self, address: AddressLike) -> bool:
        return self.account(address).is_verified

    def delegated_to(self, address: AddressLike) -> Optional[str]:
        return self.account(address).delegated_to

    def delegators_of(self, address: AddressLike) -> List[str]:
        return list(self._delegators.get(to_address(address), []))

    def is_email_attested(self, email_hash: Union[bytes, str]) -> bool:
        return to_bytes32(email_hash) in self._email_hashes

    def _get_or_create(self, address: str) -> Account:
        if address not in self._accounts:
            self._accounts[address] = Account(address)
        return self._accounts[address]

    def to_dict(self) -> Dict[str, Any]:
        '''Snapshot the ledger. The round source binding is not included.'''
        return {
            'class': scoped_class_name(self),
            'address': self.address,
            'authority': serialize_value(self.authority),
            'domain': self.domain,
            'accounts': serialize_value(list(self._accounts.values())),
        }

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> IdentityLedger:
        ledger = cls(
            address=params['address'],
            authority=deserialize_value(params['authority']),
            domain=params.get('domain', DEFAULT_DOMAIN),
        )
        for account in deserialize_value(params.get('accounts', [])):
            ledger._accounts[account.address] = account
            if account.email_hash is not None:
                ledger._email_hashes.add(account.email_hash)
        for account in ledger._accounts.values():
            if account.delegated_to is not None:
                ledger._delegators.setdefault(
                    account.delegated_to, []
                ).append(account.address)
        return ledger

    def __repr__(self):
        return f'IdentityLedger({self.address!r}, domain={self.domain!r})'
