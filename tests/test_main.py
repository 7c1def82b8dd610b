import sys
import os
import io
import json

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
sys.path.append(os.path.dirname(__file__))
import votechain.persist
from votechain.__main__ import KEY_VARIABLE, argparser, main
from votechain.identity import attestation_digest, domain_separator, \
    identity_digest
from votechain.round import VoteOption

from deployment import ADMIN, ADMIN_KEY, EMAILS, USERS, attest, create_round, \
    deploy

EMAIL_HASH = '0x' + identity_digest(EMAILS[0]).hex()


def run(*args):
    out = io.StringIO()
    code = main(out=out, **vars(argparser.parse_args(args)))
    return code, out.getvalue().splitlines()


def test_identity_digest():
    code, lines = run('identity-digest', EMAILS[0])
    assert code == 0
    assert lines == [EMAIL_HASH]
    assert len(lines[0]) == 66


def test_attestation_digest():
    code, lines = run(
        'attestation-digest', USERS[0].lower(), '100000', EMAIL_HASH,
        '-d', 'other',
    )
    assert code == 0
    assert lines == ['0x' + attestation_digest(
        domain_separator('other'), USERS[0], 100000, EMAIL_HASH
    ).hex()]


def test_sign_with_key():
    code, lines = run(
        'sign', USERS[0], '100000', EMAIL_HASH, '-k', '0x' + ADMIN_KEY.hex(),
    )
    assert code == 0
    signature, signer = lines
    assert signer == ADMIN.address
    ledger, factory = deploy()
    ledger.attest(USERS[0], 100000, signature, EMAIL_HASH)
    assert ledger.current_weight(USERS[0]) == 100000


def test_sign_key_from_environment(monkeypatch):
    monkeypatch.setenv(KEY_VARIABLE, '0x' + ADMIN_KEY.hex())
    code, lines = run('sign', USERS[1], '5', EMAIL_HASH)
    assert code == 0
    assert lines[1] == ADMIN.address


def test_sign_without_key(monkeypatch):
    monkeypatch.delenv(KEY_VARIABLE, raising=False)
    with pytest.raises(ValueError):
        run('sign', USERS[0], '100000', EMAIL_HASH)


def test_results(tmp_path):
    ledger, factory = deploy()
    attest(ledger, USERS[0], 300, EMAILS[0])
    attest(ledger, USERS[1], 100, EMAILS[1])
    voting = create_round(factory)
    voting.vote(USERS[0], [(1, VoteOption.AGREE), (2, VoteOption.AGREE)],
                [2, 3])
    voting.vote(USERS[1], [(1, VoteOption.DISAGREE), (2, VoteOption.ABSTAIN)],
                [3, 1])
    snapshot = tmp_path / 'round.json'
    snapshot.write_text(
        json.dumps(votechain.persist.to_dict(voting)), encoding='utf8'
    )
    code, lines = run('results', str(snapshot))
    assert code == 0
    assert lines[0] == f'Round {voting.address} (OPEN)'
    assert lines[1] == '2 ballots cast'
    assert 'agree 300  disagree 100  abstain 0  total 400' in lines[4]
    assert '(75.00% agree)' in lines[4]
    nomination_lines = lines[lines.index(
        'Nominations (most supported first):'
    ) + 1:]
    assert [line.split()[0] for line in nomination_lines] == ['3', '2', '1']
    assert 'total 400' in nomination_lines[0]


def test_results_not_a_round(tmp_path):
    snapshot = tmp_path / 'ledger.json'
    ledger, factory = deploy()
    snapshot.write_text(
        json.dumps(votechain.persist.to_dict(ledger)), encoding='utf8'
    )
    with pytest.raises(ValueError):
        run('results', str(snapshot))


def test_no_command():
    code, lines = run()
    assert code == 2
    assert lines[0].startswith('usage:')


def test_results_foreign_class_not_called(tmp_path):
    marker = tmp_path / 'marker'
    snapshot = tmp_path / 'round.json'
    snapshot.write_text(json.dumps({
        'class': 'subprocess.run',
        'args': ['touch', str(marker)],
    }), encoding='utf8')
    with pytest.raises(ValueError):
        run('results', str(snapshot))
    assert not marker.exists()


def test_results_nested_foreign_name(tmp_path):
    ledger, factory = deploy()
    snapshot = tmp_path / 'round.json'
    dict_form = votechain.persist.to_dict(create_round(factory))
    dict_form['proposals'][0]['content'] = {
        'type': 'os.system', 'value': 'true',
    }
    snapshot.write_text(json.dumps(dict_form), encoding='utf8')
    with pytest.raises(ValueError):
        run('results', str(snapshot))
