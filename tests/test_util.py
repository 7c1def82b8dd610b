import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import votechain.util
from votechain.errors import InvalidAddress, InvalidBalance, InvalidDigest


def test_keccak_empty():
    assert votechain.util.keccak256(b'').hex() == (
        'c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470'
    )


@pytest.mark.parametrize('value', [
    '0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed',
    '0x5AAEB6053F3E94C9B9A09F33669435E7EF1BEAED',
    '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed',
    bytes.fromhex('5aaeb6053f3e94c9b9a09f33669435e7ef1beaed'),
])
def test_to_address_checksums(value):
    assert votechain.util.to_address(value) == (
        '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed'
    )


@pytest.mark.parametrize('value', [
    '',
    '0x1234',
    '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAeD',  # broken checksum
    'not an address at all, not even hex!!!!!!',
    b'\x01' * 19,
    1234,
    None,
])
def test_to_address_invalid(value):
    with pytest.raises(InvalidAddress):
        votechain.util.to_address(value)


def test_to_bytes32():
    digest = votechain.util.keccak256(b'abc')
    assert votechain.util.to_bytes32(digest) == digest
    assert votechain.util.to_bytes32('0x' + digest.hex()) == digest


@pytest.mark.parametrize('value', [b'\x00' * 31, '0x' + '00' * 33, '0xzz', 5])
def test_to_bytes32_invalid(value):
    with pytest.raises(InvalidDigest):
        votechain.util.to_bytes32(value)


@pytest.mark.parametrize(('value', 'ok'), [
    (0, True),
    (100000, True),
    (2 ** 256 - 1, True),
    (2 ** 256, False),
    (-1, False),
    (True, False),
    (1.5, False),
    ('100', False),
])
def test_check_uint256(value, ok):
    if ok:
        assert votechain.util.check_uint256(value) == value
    else:
        with pytest.raises(InvalidBalance):
            votechain.util.check_uint256(value)


def test_create2_reference_vector():
    # first example of EIP-1014
    assert votechain.util.create2_address(
        votechain.util.ZERO_ADDRESS, 0, b'\x00'
    ) == '0x4D1A2e2bB4F88F0250f26Ffff098B0b30B26BF38'


def test_create2_salt_changes_address():
    deployer = '0x' + 'f1' * 20
    addresses = {
        votechain.util.create2_address(deployer, salt, b'code')
        for salt in range(1, 6)
    }
    assert len(addresses) == 5


def test_sorted_votes_stable():
    votes = {'A': 5, 'B': 10, 'C': 5, 'D': 0}
    assert votechain.util.sorted_votes(votes) == [
        ('B', 10), ('A', 5), ('C', 5), ('D', 0)
    ]
    assert list(votechain.util.descending_dict(votes)) == ['B', 'A', 'C', 'D']
