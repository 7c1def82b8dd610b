"""A commandline tool for attestation signing and round result reports.

Computes identity and attestation digests, signs attestations as a ledger
administrator would, and shows the tallies of a round snapshot.
"""

import argparse
import json
import logging
import os
import sys
from typing import Optional, TextIO

from votechain.identity import DEFAULT_DOMAIN, attestation_digest, \
    domain_separator, identity_digest, recover_signer, sign_attestation
from votechain.round import VotingRound
from votechain.util import to_address, to_bytes32

KEY_VARIABLE = 'VOTECHAIN_SIGNER_KEY'
ROUND_CLASS = '.'.join((VotingRound.__module__, VotingRound.__name__))

argparser = argparse.ArgumentParser(
    prog='votechain',
    description=__doc__,
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
argparser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='show all log messages and other info',
)
argparser.add_argument(
    '-q', '--quiet',
    action='store_true',
    help='do not show any log messages or other info',
)
subparsers = argparser.add_subparsers(dest='command')

identity_parser = subparsers.add_parser(
    'identity-digest',
    help='hash an e-mail address into an identity digest',
)
identity_parser.add_argument('email', help='e-mail address to hash')


def _add_claim_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('subject', help='address being attested')
    parser.add_argument('balance', type=int, help='attested balance')
    parser.add_argument('email_hash', help='identity digest as 0x-hex')
    parser.add_argument(
        '-d', '--domain',
        default=DEFAULT_DOMAIN,
        help='domain label of the target ledger',
    )


digest_parser = subparsers.add_parser(
    'attestation-digest',
    help='compute the digest an administrator signs',
)
_add_claim_arguments(digest_parser)

sign_parser = subparsers.add_parser(
    'sign',
    help='sign an attestation as a ledger administrator',
)
_add_claim_arguments(sign_parser)
sign_parser.add_argument(
    '-k', '--key',
    help=f'administrator private key as 0x-hex; defaults to ${KEY_VARIABLE}',
)

results_parser = subparsers.add_parser(
    'results',
    help='show the tallies of a round snapshot',
)
results_parser.add_argument(
    'snapshot',
    type=argparse.FileType('r', encoding='utf8'),
    help='JSON round snapshot file, - for standard input',
)


def main(command: Optional[str] = None,
         verbose: bool = False,
         quiet: bool = False,
         out: TextIO = sys.stdout,
         **kwargs,
         ) -> int:
    logging.basicConfig(
        level=(
            logging.DEBUG if verbose
            else (logging.WARNING if quiet else logging.INFO)
        ),
        format='%(levelname)-10s %(message)s'
    )
    if command == 'identity-digest':
        print('0x' + identity_digest(kwargs['email']).hex(), file=out)
    elif command == 'attestation-digest':
        digest = attestation_digest(
            domain_separator(kwargs['domain']),
            to_address(kwargs['subject']),
            kwargs['balance'],
            to_bytes32(kwargs['email_hash']),
        )
        print('0x' + digest.hex(), file=out)
    elif command == 'sign':
        run_sign(out=out, **kwargs)
    elif command == 'results':
        show_results(load_round(kwargs['snapshot']), out=out)
    else:
        argparser.print_usage(file=out)
        return 2
    return 0


def run_sign(subject: str,
             balance: int,
             email_hash: str,
             domain: str = DEFAULT_DOMAIN,
             key: Optional[str] = None,
             out: TextIO = sys.stdout,
             ) -> None:
    """Sign an attestation and print the signature and the signer."""
    if key is None:
        key = os.environ.get(KEY_VARIABLE)
    if not key:
        raise ValueError(
            f'no signing key given, use --key or set {KEY_VARIABLE}'
        )
    subject = to_address(subject)
    email_hash = to_bytes32(email_hash)
    signature = sign_attestation(key, subject, balance, email_hash, domain)
    digest = attestation_digest(
        domain_separator(domain), subject, balance, email_hash
    )
    signer = recover_signer(digest, signature)
    logging.info('signed attestation of %s for %d as %s',
                 subject, balance, signer)
    print('0x' + signature.hex(), file=out)
    print(signer, file=out)


def load_round(snapshot_file: TextIO) -> VotingRound:
    """Restore a round from a JSON snapshot file.

    The snapshot must describe a :class:`VotingRound`; nothing else named in
    the file is resolved before that is checked.
    """
    params = json.load(snapshot_file)
    if (not isinstance(params, dict)
            or params.get('class') != ROUND_CLASS):
        raise ValueError(
            'snapshot does not hold a voting round: '
            + getattr(snapshot_file, 'name', repr(snapshot_file))
        )
    params = dict(params)
    del params['class']
    return VotingRound.from_dict(params)


def show_results(voting: VotingRound, out: TextIO = sys.stdout) -> None:
    """Show the tallies of all proposals and nominations of a round."""
    proposal_results, nomination_results = voting.all_results()
    print(f'Round {voting.address} ({voting.status.name})', file=out)
    print(f'{len(voting.voters())} ballots cast', file=out)
    print(file=out)
    print('Proposals:', file=out)
    if not proposal_results:
        print('  none', file=out)
    for result in proposal_results:
        print(
            f'  {result.index:>3}  agree {result.agree}'
            f'  disagree {result.disagree}  abstain {result.abstain}'
            f'  total {result.total_vote}'
            f'  ({float(result.agree_share):.2%} agree)',
            file=out,
        )
    print(file=out)
    print('Nominations (most supported first):', file=out)
    if not nomination_results:
        print('  none', file=out)
    for result in voting.ranked_nominations():
        print(
            f'  {result.index:>3}  total {result.total_vote}'
            f'  0x{result.content.hex()}',
            file=out,
        )


if __name__ == '__main__':
    args = argparser.parse_args()
    sys.exit(main(**vars(args)))
