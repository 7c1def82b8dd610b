'''Various utility functions for other modules of Votechain.

Hashing, address normalization and byte conversions shared by the ledger,
the rounds and the factory. There should normally be no need to use these
functions directly.
'''

import operator
from typing import Any, Dict, List, Tuple, Union
from numbers import Number

from Crypto.Hash import keccak
import eth_utils

from votechain.errors import InvalidAddress, InvalidBalance, InvalidDigest


ZERO_ADDRESS = '0x' + '00' * 20
UINT256_MAX = 2 ** 256 - 1

AddressLike = Union[str, bytes]


def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def to_address(value: AddressLike) -> str:
    '''Normalize an address to its EIP-55 checksummed hex form.

    :param value: A hex string (with or without checksum casing) or 20 raw
        bytes.
    :raises InvalidAddress: If the value is not an address.
    '''
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise InvalidAddress(value)
        return eth_utils.to_checksum_address(bytes(value))
    if not isinstance(value, str) or not eth_utils.is_address(value):
        raise InvalidAddress(value)
    return eth_utils.to_checksum_address(value)


def address_bytes(value: AddressLike) -> bytes:
    return bytes.fromhex(to_address(value)[2:])


def to_bytes32(value: Union[str, bytes]) -> bytes:
    '''Convert a 32-byte digest given as bytes or ``0x``-hex to bytes.

    :raises InvalidDigest: If the value does not hold exactly 32 bytes.
    '''
    if isinstance(value, str):
        try:
            value = eth_utils.decode_hex(value)
        except ValueError as e:
            raise InvalidDigest(value) from e
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise InvalidDigest(value)
    return bytes(value)


def check_uint256(value: Any) -> int:
    if (isinstance(value, bool) or not isinstance(value, int)
            or not 0 <= value <= UINT256_MAX):
        raise InvalidBalance(value)
    return value


def uint256_bytes(value: int) -> bytes:
    return check_uint256(value).to_bytes(32, 'big')


def create2_address(deployer: AddressLike, salt: int, code_id: bytes) -> str:
    '''Derive a contract address the way CREATE2 does.

    :param deployer: Address of the deploying component.
    :param salt: Integer salt, encoded as a 32-byte big-endian word.
    :param code_id: Bytes identifying the deployed code; hashed.
    '''
    return to_address(keccak256(
        b'\xff' + address_bytes(deployer) + uint256_bytes(salt)
        + keccak256(code_id)
    )[12:])


def sorted_votes(votes: Dict[Any, Number],
                 descending: bool = True,
                 ) -> List[Tuple[Any, Number]]:
    '''Return votes items sorted by value.

    The sort is stable, so items with equal values keep their input order.
    '''
    return list(sorted(
        votes.items(),
        key=operator.itemgetter(1),
        reverse=descending
    ))


def descending_dict(d: Dict[Any, Number]) -> Dict[Any, Number]:
    return dict(sorted_votes(d))
