"""Test fixtures for scryfall_catalog tests."""

from typing import Any, Dict, List, Optional

import pytest

from scryfall_catalog.config import ScryfallConfig
from scryfall_catalog.models import Batch, CanonicalRecord

HEADER = (
    "Name,Set code,Set name,Collector number,Foil,Rarity,Quantity,ManaBox ID,"
    "Scryfall ID,Purchase price,Misprint,Altered,Condition,Language,"
    "Purchase price currency"
)


def scryfall_card(name: str, set_code: str, collector_number: str = "1", **extra: Any) -> Dict[str, Any]:
    """Minimal Scryfall card object."""
    card = {
        "object": "card",
        "id": f"{set_code}-{collector_number}",
        "name": name,
        "set": set_code,
        "set_name": extra.pop("set_name", f"{set_code.upper()} Set"),
        "collector_number": collector_number,
        "rarity": "common",
    }
    card.update(extra)
    return card


class FakeLookup:
    """Scripted lookup service.

    `script` maps a batch index to a list of outcomes, consumed one per call.
    An outcome is either an exception to raise or a list of Scryfall card
    dicts to return. Batches without a script return no cards.
    """

    def __init__(self, script: Optional[Dict[int, List[Any]]] = None):
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.calls: List[int] = []

    async def fetch_collection(self, batch: Batch) -> List[CanonicalRecord]:
        self.calls.append(batch.index)
        outcomes = self.script.get(batch.index)
        if not outcomes:
            return []
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return [CanonicalRecord.from_scryfall(card) for card in outcome]


@pytest.fixture
def fast_config() -> ScryfallConfig:
    """Config without dispatch delay or retry backoff."""
    return ScryfallConfig(dispatch_delay_seconds=0, retry_backoff_seconds=0)


@pytest.fixture
def sample_inventory_csv() -> str:
    """Scanner export with two valid rows, a short row and a nameless row."""
    return f"""{HEADER}
Lightning Bolt,LEA,Limited Edition Alpha,161,foil,common,2,101,,12.50,false,false,near_mint,en,USD
"Borborygmos, Enraged",RTR,Return to Ravnica,143,normal,rare,1,102,,0.75,false,false,light_played,en,USD
Shock,STA,Strixhaven Mystical Archive
,M21,Core Set 2021,159,normal,common,1,104,,0.10,false,false,near_mint,en,USD
"""


@pytest.fixture
def bolt_card() -> Dict[str, Any]:
    return scryfall_card(
        "Lightning Bolt",
        "lea",
        "161",
        set_name="Limited Edition Alpha",
        type_line="Instant",
        oracle_text="Lightning Bolt deals 3 damage to any target.",
        mana_cost="{R}",
        cmc=1.0,
        colors=["R"],
        color_identity=["R"],
        finishes=["nonfoil"],
        prices={"usd": "450.00", "usd_foil": None},
        image_uris={"normal": "https://cards.scryfall.io/normal/front/bolt.jpg"},
        artist="Christopher Rush",
    )


@pytest.fixture
def card_factory():
    """Build Scryfall card dicts: card_factory(name, set_code, collector_number, **fields)."""
    return scryfall_card


@pytest.fixture
def lookup_factory():
    """Build a FakeLookup from a {batch_index: [outcome, ...]} script."""
    return FakeLookup
