"""Map reconciled cards to Shopify product import rows."""

import logging
import re
from decimal import Context, Decimal, getcontext
from typing import Dict, List, Optional, Sequence

from slugify import slugify

from .config import CatalogConfig
from .models import CanonicalRecord, ReconciledRecord
from .progress import ProgressLevel, ProgressSink

logger = logging.getLogger(__name__)

CATALOG_HEADER = [
    "Handle",
    "Title",
    "Body (HTML)",
    "Vendor",
    "Product Category",
    "Type",
    "Tags",
    "Published",
    "Option1 Name",
    "Option1 Value",
    "Option1 Linked To",
    "Option2 Name",
    "Option2 Value",
    "Option2 Linked To",
    "Option3 Name",
    "Option3 Value",
    "Option3 Linked To",
    "Variant SKU",
    "Variant Grams",
    "Variant Inventory Tracker",
    "Variant Inventory Qty",
    "Variant Inventory Policy",
    "Variant Fulfillment Service",
    "Variant Price",
    "Variant Compare At Price",
    "Variant Requires Shipping",
    "Variant Taxable",
    "Variant Barcode",
    "Image Src",
    "Image Position",
    "Image Alt Text",
    "Gift Card",
    "SEO Title",
    "SEO Description",
    "product.metafields.custom.card_name",
    "product.metafields.custom.set_name",
    "product.metafields.custom.collector_number",
    "product.metafields.custom.rarity",
    "product.metafields.custom.condition",
    "product.metafields.custom.language",
    "product.metafields.custom.finish",
    "product.metafields.custom.mana_cost",
    "product.metafields.custom.artist",
    "Variant Image",
    "Variant Weight Unit",
    "Variant Tax Code",
    "Cost per item",
    "Status",
]

MAIN_TYPES = frozenset({
    "Legendary",
    "Basic",
    "Snow",
    "World",
    "Artifact",
    "Battle",
    "Creature",
    "Enchantment",
    "Instant",
    "Kindred",
    "Land",
    "Planeswalker",
    "Sorcery",
    "Tribal",
})

COLOR_NAMES = {
    "W": "White",
    "U": "Blue",
    "B": "Black",
    "R": "Red",
    "G": "Green",
}

RARITY_LABELS = {
    "common": "Common",
    "uncommon": "Uncommon",
    "rare": "Rare",
    "mythic": "Mythic Rare",
    "special": "Special",
    "bonus": "Bonus",
}

# Scanner and Scryfall language codes to display names
LANGUAGE_MAP = {
    "en": "English",
    "ja": "Japanese",
    "ph": "Phyrexian",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ko": "Korean",
    "ru": "Russian",
    "zhs": "Chinese Simplified",
    "zht": "Chinese Traditional",
}

# Scanner condition codes to display names
CONDITION_MAP = {
    "mint": "Mint",
    "near_mint": "Near Mint",
    "near mint": "Near Mint",
    "nm": "Near Mint",
    "excellent": "Excellent",
    "good": "Good",
    "light_played": "Lightly Played",
    "lightly played": "Lightly Played",
    "lp": "Lightly Played",
    "played": "Played",
    "moderately played": "Moderately Played",
    "mp": "Moderately Played",
    "heavily played": "Heavily Played",
    "hp": "Heavily Played",
    "poor": "Damaged",
    "damaged": "Damaged",
}

FOIL_LABEL = "Foil"
NON_FOIL_LABEL = "Non-Foil"
SEO_DESCRIPTION_LIMIT = 320
CENTS = Decimal("0.01")
APOSTROPHES = [["'", ""], ["\u2019", ""]]


def slugify_name(name: str) -> str:
    """Lowercase URL slug: [a-z0-9-] only, single hyphens, no edge hyphens."""
    if not name:
        return ""
    # Apostrophes are dropped, not turned into hyphens: "urzas-tower"
    return slugify(name, lowercase=True, replacements=APOSTROPHES)


def build_handle(set_code: str, collector_number: str, name: str) -> str:
    return f"{set_code.lower()}-{collector_number}-{slugify_name(name)}"


def build_sku(set_code: str, collector_number: str) -> str:
    return f"{set_code.upper() or 'UNK'}-{collector_number or '000'}"


def main_types(type_line: str) -> List[str]:
    """Card types and supertypes from the front face's type line, subtypes dropped."""
    front = type_line.split("//")[0]
    before_subtypes = re.split(r"\s[—-]\s|—", front)[0]
    return [token for token in before_subtypes.split() if token in MAIN_TYPES]


def color_label(colors: Sequence[str], color_identity: Sequence[str] = ()) -> str:
    palette = list(colors) or list(color_identity)
    if len(palette) > 1:
        return "Multicolor"
    if len(palette) == 1:
        return COLOR_NAMES.get(palette[0].upper(), palette[0])
    return "Colorless"


def mana_value_tag(mana_value: Optional[float]) -> str:
    if mana_value is None:
        return ""
    if float(mana_value).is_integer():
        return f"MV {int(mana_value)}"
    return f"MV {mana_value}"


def rarity_label(rarity: str) -> str:
    return RARITY_LABELS.get(rarity.lower(), rarity.title())


def language_label(language: str) -> str:
    return LANGUAGE_MAP.get(language.strip().lower(), language)


def condition_label(condition: str) -> str:
    return CONDITION_MAP.get(condition.strip().lower(), condition)


def build_tags(record: ReconciledRecord) -> str:
    """Comma-separated Shopify tags, de-duplicated in first-seen order.

    Order: set code, keywords, main types, color, mana value, finish,
    rarity, language.
    """
    card = record.canonical
    tags: List[str] = [card.set_code.upper()]
    tags.extend(card.keywords)
    tags.extend(main_types(card.type_line))
    tags.append(color_label(card.colors, card.color_identity))
    tags.append(mana_value_tag(card.mana_value))
    tags.append(FOIL_LABEL if record.foil else NON_FOIL_LABEL)
    tags.append(rarity_label(card.rarity))
    tags.append(language_label(record.language))

    seen = set()
    final_tags = []
    for tag in tags:
        if tag and tag not in seen:
            seen.add(tag)
            final_tags.append(tag)
    return ", ".join(final_tags)


def build_description(card: CanonicalRecord) -> str:
    oracle = re.sub(r"\r\n|\r|\n", "<br>", card.oracle_text)
    if card.type_line:
        body = card.type_line
        if "Creature" in main_types(card.type_line) and (card.power or card.toughness):
            body += f" - {card.power}/{card.toughness}"
        if oracle:
            body += f" - {oracle}"
        return f"<p>{body}</p>"
    if oracle:
        return f"<p>{oracle}</p>"
    return card.name


def build_title(card: CanonicalRecord) -> str:
    return f"{card.name} ({card.set_name})"


def build_seo_description(record: ReconciledRecord) -> str:
    card = record.canonical
    parts = [f"{card.name} from {card.set_name}"]
    if card.type_line:
        parts.append(f"{rarity_label(card.rarity)} {card.type_line}".strip())
    parts.append(
        f"{condition_label(record.condition)} {FOIL_LABEL if record.foil else NON_FOIL_LABEL}"
    )
    return (". ".join(parts) + ".")[:SEO_DESCRIPTION_LIMIT]


def format_price(value: Optional[Decimal]) -> str:
    """Two-decimal price text; empty for missing or non-finite values."""
    if value is None or not value.is_finite():
        return ""
    # Default context precision (28) is too small for very large amounts
    precision = max(getcontext().prec, value.adjusted() + 3)
    return f"{value.quantize(CENTS, context=Context(prec=precision))}"


def variant_price(record: ReconciledRecord) -> str:
    """Market price for the record's finish, falling back to what was paid."""
    card = record.canonical
    price = card.price_foil if record.foil else card.price
    if price is None:
        price = card.price if card.price is not None else card.price_foil
    if price is None and record.purchase_price:
        price = record.purchase_price
    return format_price(price) or "0.00"


def to_row(record: ReconciledRecord, config: Optional[CatalogConfig] = None) -> Optional[List[str]]:
    """Build one catalog row in CATALOG_HEADER order.

    Returns None for records without a name or set name; those cannot be
    listed and are left out of the export.
    """
    config = config or CatalogConfig()
    card = record.canonical
    if not card.name or not card.set_name:
        logger.warning(
            f"Rejecting catalog row without name/set name: "
            f"name={card.name!r} set_name={card.set_name!r} set={card.set_code!r}"
        )
        return None

    title = build_title(card)
    finish = FOIL_LABEL if record.foil else NON_FOIL_LABEL
    condition = condition_label(record.condition)
    language = language_label(record.language)

    row: Dict[str, str] = {
        "Handle": build_handle(card.set_code, card.collector_number, card.name),
        "Title": title,
        "Body (HTML)": build_description(card),
        "Vendor": config.vendor,
        "Product Category": config.product_category,
        "Type": config.product_type,
        "Tags": build_tags(record),
        "Published": config.published,
        "Option1 Name": "Condition",
        "Option1 Value": condition,
        "Option1 Linked To": "",
        "Option2 Name": "Finish",
        "Option2 Value": finish,
        "Option2 Linked To": "",
        "Option3 Name": "Language",
        "Option3 Value": language,
        "Option3 Linked To": "",
        "Variant SKU": build_sku(card.set_code, card.collector_number),
        "Variant Grams": str(config.grams),
        "Variant Inventory Tracker": config.inventory_tracker,
        "Variant Inventory Qty": str(record.quantity),
        "Variant Inventory Policy": config.inventory_policy,
        "Variant Fulfillment Service": config.fulfillment_service,
        "Variant Price": variant_price(record),
        "Variant Compare At Price": "",
        "Variant Requires Shipping": config.requires_shipping,
        "Variant Taxable": config.taxable,
        "Variant Barcode": "",
        "Image Src": card.image_url,
        "Image Position": "1" if card.image_url else "",
        "Image Alt Text": title if card.image_url else "",
        "Gift Card": "FALSE",
        "SEO Title": title,
        "SEO Description": build_seo_description(record),
        "product.metafields.custom.card_name": card.name,
        "product.metafields.custom.set_name": card.set_name,
        "product.metafields.custom.collector_number": card.collector_number,
        "product.metafields.custom.rarity": rarity_label(card.rarity),
        "product.metafields.custom.condition": condition,
        "product.metafields.custom.language": language,
        "product.metafields.custom.finish": finish,
        "product.metafields.custom.mana_cost": card.mana_cost,
        "product.metafields.custom.artist": card.artist,
        "Variant Image": card.image_url,
        "Variant Weight Unit": config.weight_unit,
        "Variant Tax Code": "",
        "Cost per item": format_price(record.purchase_price) if record.purchase_price else "",
        "Status": config.status,
    }
    return [row[column] for column in CATALOG_HEADER]


def build_catalog_rows(
    records: Sequence[ReconciledRecord],
    config: Optional[CatalogConfig] = None,
    sink: Optional[ProgressSink] = None,
) -> List[List[str]]:
    """Map every reconciled record to a row, dropping the ones to_row rejects."""
    rows = []
    for record in records:
        try:
            row = to_row(record, config)
        except Exception as e:
            logger.exception(f"Failed to build catalog row for {record.name!r} ({record.set_code})")
            if sink is not None:
                sink.emit(
                    ProgressLevel.WARNING,
                    f"Skipped {record.name or 'unnamed card'} ({record.set_code or 'no set'}): {e!r}",
                )
            continue
        if row is None:
            if sink is not None:
                sink.emit(
                    ProgressLevel.WARNING,
                    f"Skipped card without name or set name ({record.set_code or 'no set'})",
                )
            continue
        rows.append(row)
    return rows
