'''Shared setup for the governance tests: keys, addresses and a deployment.
'''

import sys
import os

from eth_account import Account

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from votechain.factory import RoundFactory
from votechain.identity import IdentityLedger, identity_digest, \
    sign_attestation
from votechain.round import RoundStatus, VotingRound
from votechain.util import to_address

ADMIN_KEY = b'\x46' * 32
ADMIN = Account.from_key(ADMIN_KEY)
STRANGER_KEY = b'\x47' * 32

OWNER = to_address('0x' + '0a' * 20)
LEDGER_ADDRESS = to_address('0x' + 'a1' * 20)
FACTORY_ADDRESS = to_address('0x' + 'f1' * 20)
USERS = [to_address('0x' + f'{i:02x}' * 20) for i in range(0x10, 0x18)]

EMAILS = [f'user{i}@example.com' for i in range(1, len(USERS) + 1)]

TITLE = 'Đại hội cổ đông thường niên 10/2024'.encode('utf8')
DATE = 20010

PROPOSALS = ['Đề xuất 1'.encode('utf8'), 'Đề xuất 2'.encode('utf8')]
NOMINATIONS = [
    'Nguyễn Văn A'.encode('utf8'),
    'Bùi Văn B'.encode('utf8'),
    'Hà Văn C'.encode('utf8'),
]


def deploy(domain='verify'):
    '''Deploy a ledger and a factory wired to each other.'''
    ledger = IdentityLedger(LEDGER_ADDRESS, OWNER, domain=domain)
    ledger.set_admin(OWNER, ADMIN.address, True)
    factory = RoundFactory(FACTORY_ADDRESS, OWNER)
    factory.initialize(VotingRound, ledger)
    ledger.set_round_factory(OWNER, factory)
    return ledger, factory


def attest(ledger, user, balance, email, key=ADMIN_KEY):
    email_hash = identity_digest(email)
    signature = sign_attestation(key, user, balance, email_hash, ledger.domain)
    ledger.attest(user, balance, signature, email_hash)


def create_round(factory,
                 proposals=PROPOSALS,
                 nominations=NOMINATIONS,
                 select_limit=2,
                 status=RoundStatus.OPEN,
                 ):
    '''Create a round with a catalog and move it to the given status.'''
    meta = factory.create_voting(OWNER, TITLE, DATE)
    voting = factory.voting_at(meta.index)
    if proposals:
        voting.add_proposals(
            OWNER, proposals, [i % 2 == 0 for i in range(len(proposals))]
        )
    if nominations:
        voting.add_nominations(OWNER, nominations)
    voting.set_nomination_select_limit(OWNER, select_limit)
    voting.set_status(OWNER, status)
    return voting
