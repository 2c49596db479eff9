"""
Shared fixtures.

Every test runs against a fresh in-memory store and identity directory.
No network access, no .env needed.
"""

import pytest

from splitledger.config import LedgerSettings
from splitledger.orchestrator import create_group_ledger
from splitledger.services.encryption import FernetEncryptionService
from splitledger.services.identity import InMemoryIdentityProvider
from splitledger.services.storage import InMemoryDocumentStore
from tests.support import ALICE, CAROL, run


@pytest.fixture
def ledger_settings():
    # No waiting between empty member lookups
    return LedgerSettings(member_lookup_retries=1, member_lookup_delay=0)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def identity():
    """Alice and Carol have accounts; Bob signs up later in some tests."""
    return InMemoryIdentityProvider([ALICE, CAROL])


@pytest.fixture
def encryption():
    return FernetEncryptionService(FernetEncryptionService.generate_key())


@pytest.fixture
def ledger(store, identity, encryption, ledger_settings):
    return create_group_ledger(
        store=store,
        identity=identity,
        encryption=encryption,
        ledger_settings=ledger_settings,
    )


@pytest.fixture
def membership(ledger):
    return ledger.membership


@pytest.fixture
def group(membership):
    """An active group created by Alice."""
    return run(membership.create_group("Flat 4B", None, ALICE)).unwrap()
