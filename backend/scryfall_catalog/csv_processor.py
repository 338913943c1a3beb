"""CSV processing for scanner inventory input and Shopify catalog output."""

import csv
import logging
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from .catalog import CATALOG_HEADER
from .models import LocalRecord, ParseResult, SkippedLine, to_decimal
from .progress import ProgressLevel, ProgressSink

logger = logging.getLogger(__name__)

REQUIRED_FIELD_COUNT = 15
FOIL_TOKEN = "foil"
TRUE_TOKEN = "true"

# Column order of the scanner export
(
    COL_NAME,
    COL_SET_CODE,
    COL_SET_NAME,
    COL_COLLECTOR_NUMBER,
    COL_FOIL,
    COL_RARITY,
    COL_QUANTITY,
    COL_SOURCE_ID,
    COL_EXTERNAL_ID,
    COL_PURCHASE_PRICE,
    COL_MISPRINT,
    COL_ALTERED,
    COL_CONDITION,
    COL_LANGUAGE,
    COL_PURCHASE_CURRENCY,
) = range(REQUIRED_FIELD_COUNT)

IN_FIELD_LINE_BREAK = "<br>"
NEWLINE_PATTERN = r"\r\n|\r|\n"


def split_line(line: str, delimiter: str = ",", quote: str = '"') -> List[str]:
    """Split one line on the delimiter, ignoring delimiters inside quotes.

    Quote characters only toggle the quoted state and never end up in a
    field. Doubled quotes are not treated as escapes.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == quote:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)

    fields.append("".join(current))
    return fields


def _parse_quantity(raw: str) -> int:
    try:
        quantity = int(raw)
    except ValueError:
        return 1
    return quantity if quantity >= 1 else 1


def _parse_price(raw: str) -> Decimal:
    price = to_decimal(raw) if raw else None
    return price if price is not None else Decimal("0")


def parse_line(fields: Sequence[str], line_number: int = 0) -> LocalRecord:
    """Build a LocalRecord from an already-split, trimmed field list."""
    return LocalRecord(
        name=fields[COL_NAME],
        set_code=fields[COL_SET_CODE],
        set_name=fields[COL_SET_NAME],
        collector_number=fields[COL_COLLECTOR_NUMBER],
        foil=fields[COL_FOIL].lower() == FOIL_TOKEN,
        rarity=fields[COL_RARITY],
        quantity=_parse_quantity(fields[COL_QUANTITY]),
        source_id=fields[COL_SOURCE_ID],
        external_id=fields[COL_EXTERNAL_ID],
        purchase_price=_parse_price(fields[COL_PURCHASE_PRICE]),
        misprint=fields[COL_MISPRINT].lower() == TRUE_TOKEN,
        altered=fields[COL_ALTERED].lower() == TRUE_TOKEN,
        condition=fields[COL_CONDITION],
        language=fields[COL_LANGUAGE],
        purchase_price_currency=fields[COL_PURCHASE_CURRENCY],
        line_number=line_number,
    )


def parse_inventory(text: str, delimiter: str = ",") -> ParseResult:
    """Parse a scanner export into LocalRecords.

    - First line is the header and is skipped
    - Blank lines are ignored
    - Lines with fewer than 15 fields or no card name are skipped and
      recorded in ParseResult.skipped
    - Record order follows line order
    """
    result = ParseResult()
    # Only \n ends a line; splitlines() would also break on form feeds and Unicode separators
    lines = text.split("\n")

    # Line numbers are 1-based and count the header
    for line_number, line in enumerate(lines[1:], start=2):
        line = line[:-1] if line.endswith("\r") else line
        if not line.strip():
            continue

        fields = [f.strip() for f in split_line(line, delimiter)]
        if len(fields) < REQUIRED_FIELD_COUNT:
            reason = f"expected {REQUIRED_FIELD_COUNT} fields, found {len(fields)}"
        elif not fields[COL_NAME]:
            reason = "card name is empty"
        else:
            result.records.append(parse_line(fields, line_number))
            continue

        logger.warning(f"Skipping line {line_number}: {reason}")
        result.skipped.append(SkippedLine(line_number=line_number, reason=reason))

    logger.info(
        f"Parsed {len(result.records)} records, skipped {len(result.skipped)} lines"
    )
    return result


def load_inventory(path: Path, delimiter: str = ",") -> ParseResult:
    """Read and parse a scanner export file."""
    text = Path(path).read_text(encoding="utf-8-sig")
    return parse_inventory(text, delimiter)


def serialize_catalog(
    rows: Sequence[Sequence[str]],
    header: Sequence[str] = CATALOG_HEADER,
    sink: Optional[ProgressSink] = None,
) -> str:
    """Render catalog rows as CSV text.

    Every field is quoted and embedded quotes are doubled. Newlines inside a
    field become <br> so each row stays on one line. An empty row set
    yields an empty string rather than a header-only file.
    """
    if not rows:
        message = "No catalog rows to export; output is empty"
        if sink is not None:
            sink.emit(ProgressLevel.ERROR, message)
        else:
            logger.error(message)
        return ""

    frame = pd.DataFrame([list(row) for row in rows], columns=list(header), dtype=str)
    frame = frame.fillna("").replace(NEWLINE_PATTERN, IN_FIELD_LINE_BREAK, regex=True)
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
