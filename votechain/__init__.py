"""Votechain - weighted shareholder voting with attested identities.

Votechain objects model the governance workflow of a shareholder meeting
held on an Ethereum-style ledger:

-   Who can vote and with what weight. This is recorded by the
    :class:`identity.IdentityLedger`, which accepts administrator-signed
    attestations of a participant's balance and lets participants delegate
    their weight, one level deep, to another participant.
-   What is voted on and how the votes are counted. Every
    :class:`round.VotingRound` holds a catalog of proposals (voted on with
    agree, disagree or abstain) and of nominations (a fixed number of which
    each ballot selects), moves through a simple status lifecycle, and
    tallies weighted ballots.
-   How rounds are created. The :class:`factory.RoundFactory` creates rounds
    wired to a shared ledger, keeps their registry and designates the round
    the ledger consults when checking delegations.

Owner-only operations are checked by injected authority objects from the
:mod:`auth` module; rejected operations raise errors from the :mod:`errors`
module and never leave partial changes behind. Records and components can be
snapshotted to JSON-ready dictionaries by the :mod:`persist` module.
"""
