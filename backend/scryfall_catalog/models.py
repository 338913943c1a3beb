"""Data models for inventory reconciliation against Scryfall."""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

DEFAULT_QUANTITY = 1
DEFAULT_CONDITION = "Near Mint"
DEFAULT_LANGUAGE = "English"

FOIL_FINISHES = frozenset({"foil", "etched"})


class ScryfallError(Exception):
    """Base class for failed collection lookups."""


class RateLimitedError(ScryfallError):
    """Scryfall answered 429 Too Many Requests."""


class LookupFailedError(ScryfallError):
    """Transport failure or a non-429 HTTP error."""


class MalformedResponseError(ScryfallError):
    """Response body was not JSON or had no card list."""


class RunStateError(RuntimeError):
    """An illegal RunContext transition was attempted."""


def normalize_set_code(set_code: str) -> str:
    return (set_code or "").strip().lower()


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a price value, returning None when it is absent, invalid or not finite."""
    if value is None:
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    # Decimal accepts "Infinity" and "NaN", which no price can be
    return parsed if parsed.is_finite() else None


@dataclass(frozen=True)
class LocalRecord:
    """One row of the scanning app's inventory export."""
    name: str
    set_code: str = ""
    set_name: str = ""
    collector_number: str = ""
    foil: bool = False
    rarity: str = ""
    quantity: int = DEFAULT_QUANTITY
    source_id: str = ""
    external_id: str = ""
    purchase_price: Decimal = Decimal("0")
    purchase_price_currency: str = ""
    misprint: bool = False
    altered: bool = False
    condition: str = ""
    language: str = ""
    line_number: int = 0

    @property
    def match_key(self) -> Tuple[str, str]:
        return (self.name, normalize_set_code(self.set_code))


@dataclass(frozen=True)
class SkippedLine:
    """Diagnostic for an input line that could not become a LocalRecord."""
    line_number: int
    reason: str


@dataclass
class ParseResult:
    """Records parsed from an inventory file plus the lines that were dropped."""
    records: List[LocalRecord] = field(default_factory=list)
    skipped: List[SkippedLine] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class Batch:
    """A group of local records resolved by a single collection lookup."""
    index: int
    records: Tuple[LocalRecord, ...]

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class CanonicalRecord:
    """Authoritative card data returned by Scryfall."""
    name: str
    set_code: str = ""
    set_name: str = ""
    rarity: str = ""
    type_line: str = ""
    oracle_text: str = ""
    mana_cost: str = ""
    mana_value: Optional[float] = None
    colors: Tuple[str, ...] = ()
    color_identity: Tuple[str, ...] = ()
    power: str = ""
    toughness: str = ""
    artist: str = ""
    finishes: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    price: Optional[Decimal] = None
    price_foil: Optional[Decimal] = None
    currency: str = "USD"
    image_url: str = ""
    collector_number: str = ""
    scryfall_id: str = ""

    @property
    def match_key(self) -> Tuple[str, str]:
        return (self.name, normalize_set_code(self.set_code))

    @classmethod
    def from_scryfall(cls, card: Dict[str, Any]) -> "CanonicalRecord":
        """Build a record from a Scryfall card object.

        Multi-faced cards keep most gameplay fields on their faces, so the
        front face fills anything missing at the top level.
        """
        faces = card.get("card_faces") or []
        front = faces[0] if faces else {}

        oracle_text = card.get("oracle_text")
        if oracle_text is None and faces:
            oracle_text = "\n//\n".join(
                f.get("oracle_text", "") for f in faces if f.get("oracle_text")
            )

        image_uris = card.get("image_uris") or front.get("image_uris") or {}
        prices = card.get("prices") or {}
        colors = card.get("colors")
        if colors is None:
            colors = front.get("colors") or []

        return cls(
            name=card.get("name", "") or "",
            set_code=card.get("set", "") or "",
            set_name=card.get("set_name", "") or "",
            rarity=card.get("rarity", "") or "",
            type_line=card.get("type_line") or front.get("type_line", "") or "",
            oracle_text=oracle_text or "",
            mana_cost=card.get("mana_cost") or front.get("mana_cost", "") or "",
            mana_value=card.get("cmc"),
            colors=tuple(colors),
            color_identity=tuple(card.get("color_identity") or []),
            power=card.get("power") or front.get("power", "") or "",
            toughness=card.get("toughness") or front.get("toughness", "") or "",
            artist=card.get("artist") or front.get("artist", "") or "",
            finishes=tuple(card.get("finishes") or []),
            keywords=tuple(card.get("keywords") or []),
            price=to_decimal(prices.get("usd")),
            price_foil=to_decimal(prices.get("usd_foil") or prices.get("usd_etched")),
            image_url=image_uris.get("normal", "") or "",
            collector_number=card.get("collector_number", "") or "",
            scryfall_id=card.get("id", "") or "",
        )


def resolve_foil(local_foil: Optional[bool], finishes: Sequence[str]) -> bool:
    """Decide the finish of a catalog entry.

    The scanned flag wins when there is one. Otherwise a printing that only
    exists in foil finishes is foil, and everything else is non-foil.
    """
    if local_foil is not None:
        return local_foil
    lowered = {f.lower() for f in finishes}
    if lowered & FOIL_FINISHES and "nonfoil" not in lowered:
        return True
    return False


@dataclass(frozen=True)
class ReconciledRecord:
    """A canonical record merged with the local inventory row it answers."""
    canonical: CanonicalRecord
    quantity: int = DEFAULT_QUANTITY
    condition: str = DEFAULT_CONDITION
    language: str = DEFAULT_LANGUAGE
    local_foil: Optional[bool] = None
    purchase_price: Decimal = Decimal("0")
    purchase_price_currency: str = ""
    source_id: str = ""
    matched: bool = False

    @property
    def foil(self) -> bool:
        return resolve_foil(self.local_foil, self.canonical.finishes)

    @property
    def name(self) -> str:
        return self.canonical.name

    @property
    def set_code(self) -> str:
        return self.canonical.set_code

    @property
    def set_name(self) -> str:
        return self.canonical.set_name

    @property
    def collector_number(self) -> str:
        return self.canonical.collector_number

    @classmethod
    def merge(
        cls,
        canonical: CanonicalRecord,
        local: Optional[LocalRecord] = None,
    ) -> "ReconciledRecord":
        """Combine canonical data with a local row, or with defaults if none matched."""
        if local is None:
            return cls(canonical=canonical)
        return cls(
            canonical=canonical,
            quantity=local.quantity,
            condition=local.condition or DEFAULT_CONDITION,
            language=local.language or DEFAULT_LANGUAGE,
            local_foil=local.foil,
            purchase_price=local.purchase_price,
            purchase_price_currency=local.purchase_price_currency,
            source_id=local.source_id,
            matched=True,
        )


@dataclass(frozen=True)
class BatchFailure:
    """A batch that permanently failed to resolve."""
    batch_index: int
    reason: str


class RunPhase(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"


@dataclass
class RunContext:
    """State for one reconciliation run, owned by the caller.

    The catalog is append-only and fills in batch completion order, which
    is not necessarily input order.
    """
    catalog: List[ReconciledRecord] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)
    total_batches: int = 0
    completed_batches: int = 0
    phase: RunPhase = RunPhase.PENDING

    @property
    def is_complete(self) -> bool:
        return self.phase is RunPhase.COMPLETE

    @property
    def succeeded_batches(self) -> int:
        return self.completed_batches - len(self.failures)

    def start(self, total_batches: int) -> None:
        if self.phase is not RunPhase.PENDING:
            raise RunStateError(f"Cannot start a run in phase {self.phase.value}")
        self.total_batches = total_batches
        self.completed_batches = 0
        self.phase = RunPhase.RUNNING

    def _require_running(self) -> None:
        if self.phase is not RunPhase.RUNNING:
            raise RunStateError(f"Run is {self.phase.value}, not running")

    def add_records(self, records: Sequence[ReconciledRecord]) -> None:
        self._require_running()
        self.catalog.extend(records)

    def record_failure(self, batch_index: int, reason: str) -> None:
        self._require_running()
        self.failures.append(BatchFailure(batch_index=batch_index, reason=reason))

    def mark_batch_completed(self) -> bool:
        """Count one finished batch and report whether it was the last one.

        Must stay free of await points so two batches can never both see
        themselves as last.
        """
        self._require_running()
        if self.completed_batches >= self.total_batches:
            raise RunStateError("More batches completed than were planned")
        self.completed_batches += 1
        return self.completed_batches == self.total_batches

    def complete(self) -> None:
        self._require_running()
        if self.completed_batches != self.total_batches:
            raise RunStateError(
                f"Only {self.completed_batches}/{self.total_batches} batches completed"
            )
        self.phase = RunPhase.COMPLETE
