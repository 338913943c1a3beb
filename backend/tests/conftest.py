import pytest
from fastapi.testclient import TestClient

from main import app, get_lookup, get_scryfall_config
from scryfall_catalog.config import ScryfallConfig
from scryfall_catalog.models import CanonicalRecord

INVENTORY_HEADER = (
    "Name,Set code,Set name,Collector number,Foil,Rarity,Quantity,ManaBox ID,"
    "Scryfall ID,Purchase price,Misprint,Altered,Condition,Language,"
    "Purchase price currency"
)


class StubLookup:
    """Resolves any card whose name is in `known`, otherwise returns nothing."""

    def __init__(self, known=None, error=None):
        self.known = known or {}
        self.error = error
        self.batches = []

    async def fetch_collection(self, batch):
        self.batches.append(batch)
        if self.error is not None:
            raise self.error
        return [self.known[r.name] for r in batch.records if r.name in self.known]


@pytest.fixture
def known_cards():
    return {
        "Lightning Bolt": CanonicalRecord(
            name="Lightning Bolt",
            set_code="lea",
            set_name="Limited Edition Alpha",
            collector_number="161",
            rarity="common",
            type_line="Instant",
            oracle_text="Lightning Bolt deals 3 damage to any target.",
            mana_value=1.0,
            colors=("R",),
            finishes=("nonfoil",),
        ),
        "Counterspell": CanonicalRecord(
            name="Counterspell",
            set_code="mh2",
            set_name="Modern Horizons 2",
            collector_number="267",
            rarity="uncommon",
            type_line="Instant",
            colors=("U",),
        ),
    }


@pytest.fixture
def stub_lookup(known_cards):
    return StubLookup(known_cards)


@pytest.fixture
def inventory_csv():
    return "\n".join([
        INVENTORY_HEADER,
        "Lightning Bolt,LEA,Limited Edition Alpha,161,foil,common,2,101,,12.50,false,false,near_mint,en,USD",
        "Counterspell,MH2,Modern Horizons 2,267,normal,uncommon,1,102,,1.00,false,false,near_mint,en,USD",
        "Broken,LEA",
    ])


@pytest.fixture(scope="function")
def client(stub_lookup):
    """Create test client with Scryfall replaced by a stub."""
    app.dependency_overrides[get_scryfall_config] = lambda: ScryfallConfig(
        dispatch_delay_seconds=0,
        retry_backoff_seconds=0,
    )
    app.dependency_overrides[get_lookup] = lambda: stub_lookup
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
