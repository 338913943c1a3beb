"""Tests for Shopify catalog row mapping."""

from decimal import Decimal
from unittest.mock import patch

import pytest

from scryfall_catalog.catalog import (
    CATALOG_HEADER,
    build_catalog_rows,
    build_description,
    build_handle,
    build_sku,
    build_tags,
    color_label,
    condition_label,
    format_price,
    language_label,
    main_types,
    mana_value_tag,
    slugify_name,
    to_row,
    variant_price,
)
from scryfall_catalog.config import CatalogConfig
from scryfall_catalog.models import CanonicalRecord, LocalRecord, ReconciledRecord
from scryfall_catalog.progress import ProgressLevel, ProgressLog


@pytest.fixture
def bolt_record(bolt_card):
    local = LocalRecord(
        name="Lightning Bolt",
        set_code="LEA",
        foil=True,
        quantity=2,
        condition="near_mint",
        language="en",
        purchase_price=Decimal("12.50"),
    )
    return ReconciledRecord.merge(CanonicalRecord.from_scryfall(bolt_card), local)


def column(row, name):
    return row[CATALOG_HEADER.index(name)]


class TestSlugs:
    """Tests for handle and SKU construction."""

    def test_handle_from_set_number_and_name(self):
        assert build_handle("LEA", "1", "Lightning Bolt") == "lea-1-lightning-bolt"

    @pytest.mark.parametrize("name,expected", [
        ("Borborygmos, Enraged", "borborygmos-enraged"),
        ("Fire // Ice", "fire-ice"),
        ("Jace, the Mind Sculptor", "jace-the-mind-sculptor"),
        ("Lim-Dûl's Vault", "lim-duls-vault"),
        ("  -Odd--Name-  ", "odd-name"),
        ("Urza's Tower", "urzas-tower"),
        ("Urza\u2019s Saga", "urzas-saga"),
        ("Æther Vial", "aether-vial"),
        ("Séance", "seance"),
        ("", ""),
    ])
    def test_slug_is_url_safe(self, name, expected):
        assert slugify_name(name) == expected

    def test_sku_uppercases_set(self):
        assert build_sku("lea", "161") == "LEA-161"

    def test_sku_placeholders(self):
        assert build_sku("", "") == "UNK-000"


class TestLabels:
    """Tests for tag and option labels."""

    @pytest.mark.parametrize("type_line,expected", [
        ("Instant", ["Instant"]),
        ("Legendary Creature — Human Wizard", ["Legendary", "Creature"]),
        ("Artifact Creature - Golem", ["Artifact", "Creature"]),
        ("Creature — Human Wizard // Creature — Human Insect", ["Creature"]),
        ("", []),
    ])
    def test_main_types_drop_subtypes(self, type_line, expected):
        assert main_types(type_line) == expected

    def test_color_labels(self):
        assert color_label(["R"]) == "Red"
        assert color_label(["U", "R"]) == "Multicolor"
        assert color_label([]) == "Colorless"

    def test_color_falls_back_to_identity(self):
        assert color_label([], ["G"]) == "Green"

    def test_mana_value_tag(self):
        assert mana_value_tag(3.0) == "MV 3"
        assert mana_value_tag(0.5) == "MV 0.5"
        assert mana_value_tag(None) == ""

    def test_condition_and_language_codes_are_mapped(self):
        assert condition_label("near_mint") == "Near Mint"
        assert condition_label("light_played") == "Lightly Played"
        assert language_label("ja") == "Japanese"

    def test_unknown_codes_pass_through(self):
        assert condition_label("Graded 9") == "Graded 9"
        assert language_label("Klingon") == "Klingon"


class TestBuildTags:
    """Tests for build_tags function."""

    def test_tag_order(self, bolt_record):
        assert build_tags(bolt_record) == "LEA, Instant, Red, MV 1, Foil, Common, English"

    def test_keywords_follow_set_code(self, card_factory):
        card = CanonicalRecord.from_scryfall(card_factory(
            "Serra Angel", "lea", "40",
            type_line="Creature — Angel",
            keywords=["Flying", "Vigilance"],
            colors=["W"],
            cmc=5.0,
        ))
        tags = build_tags(ReconciledRecord.merge(card)).split(", ")
        assert tags[:5] == ["LEA", "Flying", "Vigilance", "Creature", "White"]

    def test_duplicates_are_removed(self):
        card = CanonicalRecord(name="Odd", set_code="inst", keywords=("INST",))
        tags = build_tags(ReconciledRecord.merge(card)).split(", ")
        assert tags.count("INST") == 1


class TestBuildDescription:
    """Tests for build_description function."""

    def test_type_and_oracle(self, bolt_card):
        card = CanonicalRecord.from_scryfall(bolt_card)
        assert build_description(card) == (
            "<p>Instant - Lightning Bolt deals 3 damage to any target.</p>"
        )

    def test_creature_includes_power_and_toughness(self):
        card = CanonicalRecord(
            name="Grizzly Bears",
            type_line="Creature — Bear",
            power="2",
            toughness="2",
        )
        assert build_description(card) == "<p>Creature — Bear - 2/2</p>"

    def test_oracle_line_breaks_become_br(self):
        card = CanonicalRecord(name="X", type_line="Sorcery", oracle_text="One.\nTwo.")
        assert build_description(card) == "<p>Sorcery - One.<br>Two.</p>"

    def test_oracle_only(self):
        card = CanonicalRecord(name="X", oracle_text="Flying")
        assert build_description(card) == "<p>Flying</p>"

    def test_falls_back_to_name(self):
        assert build_description(CanonicalRecord(name="Mystery")) == "Mystery"


class TestVariantPrice:
    """Tests for variant_price function."""

    def test_non_foil_uses_regular_price(self):
        card = CanonicalRecord(name="X", price=Decimal("1.5"), price_foil=Decimal("4"))
        record = ReconciledRecord.merge(card, LocalRecord(name="X", foil=False))
        assert variant_price(record) == "1.50"

    def test_foil_uses_foil_price(self):
        card = CanonicalRecord(name="X", price=Decimal("1.5"), price_foil=Decimal("4"))
        record = ReconciledRecord.merge(card, LocalRecord(name="X", foil=True))
        assert variant_price(record) == "4.00"

    def test_missing_finish_price_falls_back_to_other(self, bolt_record):
        assert variant_price(bolt_record) == "450.00"

    def test_falls_back_to_purchase_price(self):
        record = ReconciledRecord.merge(
            CanonicalRecord(name="X"),
            LocalRecord(name="X", purchase_price=Decimal("0.3")),
        )
        assert variant_price(record) == "0.30"

    def test_no_price_at_all(self):
        assert variant_price(ReconciledRecord.merge(CanonicalRecord(name="X"))) == "0.00"


class TestFormatPrice:
    """Tests for format_price function."""

    def test_rounds_to_cents(self):
        assert format_price(Decimal("1.5")) == "1.50"
        assert format_price(Decimal("2.345")) == "2.34"

    def test_very_large_amount(self):
        assert format_price(Decimal("1e30")) == "1" + "0" * 30 + ".00"

    @pytest.mark.parametrize("value", [None, Decimal("Infinity"), Decimal("NaN"), Decimal("sNaN")])
    def test_missing_or_non_finite_is_blank(self, value):
        assert format_price(value) == ""


class TestToRow:
    """Tests for to_row function."""

    def test_huge_purchase_price_does_not_break_row(self):
        record = ReconciledRecord.merge(
            CanonicalRecord(name="Opt", set_code="xln", set_name="Ixalan"),
            LocalRecord(name="Opt", set_code="XLN", purchase_price=Decimal("1e30")),
        )
        row = to_row(record)

        assert column(row, "Variant Price") == "1" + "0" * 30 + ".00"
        assert column(row, "Cost per item") == "1" + "0" * 30 + ".00"

    def test_row_matches_header(self, bolt_record):
        row = to_row(bolt_record)
        assert len(row) == len(CATALOG_HEADER)

    def test_core_columns(self, bolt_record):
        row = to_row(bolt_record)

        assert column(row, "Handle") == "lea-161-lightning-bolt"
        assert column(row, "Title") == "Lightning Bolt (Limited Edition Alpha)"
        assert column(row, "Variant SKU") == "LEA-161"
        assert column(row, "Variant Inventory Qty") == "2"
        assert column(row, "Option1 Value") == "Near Mint"
        assert column(row, "Option2 Value") == "Foil"
        assert column(row, "Option3 Value") == "English"
        assert column(row, "Image Src").endswith("bolt.jpg")
        assert column(row, "Image Position") == "1"
        assert column(row, "Cost per item") == "12.50"
        assert column(row, "product.metafields.custom.artist") == "Christopher Rush"

    def test_store_settings_come_from_config(self, bolt_record):
        config = CatalogConfig(vendor="Local Game Store", status="draft")
        row = to_row(bolt_record, config)

        assert column(row, "Vendor") == "Local Game Store"
        assert column(row, "Status") == "draft"

    def test_no_image_leaves_image_columns_blank(self):
        record = ReconciledRecord.merge(CanonicalRecord(name="X", set_code="abc", set_name="ABC"))
        row = to_row(record)

        assert column(row, "Image Src") == ""
        assert column(row, "Image Position") == ""
        assert column(row, "Image Alt Text") == ""

    @pytest.mark.parametrize("card", [
        CanonicalRecord(name="", set_code="lea", set_name="Limited Edition Alpha"),
        CanonicalRecord(name="Lightning Bolt", set_code="lea", set_name=""),
        CanonicalRecord(name=""),
    ])
    def test_rejects_record_without_name_or_set_name(self, card):
        assert to_row(ReconciledRecord.merge(card)) is None


class TestBuildCatalogRows:
    """Tests for build_catalog_rows function."""

    def test_drops_rejected_records_with_warning(self, bolt_record):
        sink = ProgressLog()
        nameless = ReconciledRecord.merge(CanonicalRecord(name="", set_code="xyz"))

        rows = build_catalog_rows([bolt_record, nameless], sink=sink)

        assert len(rows) == 1
        assert len(sink.by_level(ProgressLevel.WARNING)) == 1

    def test_record_that_raises_is_skipped(self, bolt_record):
        sink = ProgressLog()
        other = ReconciledRecord.merge(CanonicalRecord(name="Opt", set_code="xln", set_name="Ixalan"))

        with patch("scryfall_catalog.catalog.build_tags", side_effect=[ValueError("bad tags"), "XLN"]):
            rows = build_catalog_rows([bolt_record, other], sink=sink)

        assert [column(r, "Title") for r in rows] == ["Opt (Ixalan)"]
        warnings = sink.by_level(ProgressLevel.WARNING)
        assert len(warnings) == 1
        assert "Lightning Bolt" in warnings[0].message

    def test_keeps_record_order(self):
        records = [
            ReconciledRecord.merge(CanonicalRecord(name=f"Card {i}", set_code="s", set_name="S"))
            for i in range(3)
        ]
        rows = build_catalog_rows(records)
        assert [column(r, "product.metafields.custom.card_name") for r in rows] == [
            "Card 0", "Card 1", "Card 2"
        ]
