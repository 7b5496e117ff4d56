"""
Parsing functions that pull the channel tables out of the CM600's DocsisStatus.asp page.

"""

import re
from collections import OrderedDict
from typing import Callable, NamedTuple

import structlog
from bs4 import BeautifulSoup, Tag
from bs4.exceptions import ParserRejectedMarkup
from cm600.model import DownstreamChannel, ModemSnapshot, UpstreamChannel
from err.exceptions import MalformedModemData

log = structlog.get_logger(__name__)

DS_TABLE_ID = "dsTable"
US_TABLE_ID = "usTable"

# Plain decimal only; int() and float() would also take "1_000", "nan", "inf" ...
INT_RE = re.compile(r"[-+]?\d+", re.ASCII)
FLOAT_RE = re.compile(r"[-+]?\d+(\.\d+)?", re.ASCII)


def cell_text(cell: Tag) -> str:
    """First direct text node of the cell, or raise if there isn't one."""
    text = cell.find(string=True, recursive=False)
    if text is None:
        raise MalformedModemData("Table cell has no text", payload=str(cell))
    return str(text)


def _first_token(text: str) -> str:
    # '603000000 Hz' -> '603000000'; harmless if there's no space
    return text.strip().split(" ", 1)[0]


def cell_as_float(cell: Tag) -> float:
    """'39.5 dBmV' -> 39.5"""
    _value = _first_token(cell_text(cell))
    if not FLOAT_RE.fullmatch(_value):
        raise MalformedModemData(
            f"bad HTML node from modem: {_value!r}", payload=str(cell)
        )
    return float(_value)


def cell_as_int(cell: Tag) -> int:
    """'256QAM' -> 256, '1000' -> 1000"""
    # Some firmware puts the unit first ('QAM256'), so drop it before splitting off units
    _value = _first_token(cell_text(cell).replace("QAM", "", 1))
    if not INT_RE.fullmatch(_value):
        raise MalformedModemData(
            f"bad HTML node from modem: {_value!r}", payload=str(cell)
        )
    return int(_value)


class Column(NamedTuple):
    index: int
    convert: Callable[[Tag], int | float | str]


# The modem doesn't label its columns in any way we can rely on, so each field is pulled from
#   a fixed position in the row. If a firmware update shuffles the table, only these maps
#   need to change.
##
# Channel | Lock Status | Modulation | Channel ID | Frequency | Power | SNR | Correctables | Uncorrectables
DS_COLUMNS: OrderedDict[str, Column] = OrderedDict(
    modulation=Column(2, cell_as_int),
    dcid=Column(3, cell_as_int),
    frequency=Column(4, cell_as_float),
    power=Column(5, cell_as_float),
    snr=Column(6, cell_as_float),
    correcteds=Column(7, cell_as_int),
    uncorrectables=Column(8, cell_as_int),
)

# Channel | Lock Status | US Channel Type | Channel ID | Symbol Rate | Frequency | Power
US_COLUMNS: OrderedDict[str, Column] = OrderedDict(
    channel_type=Column(2, cell_text),
    ucid=Column(3, cell_as_int),
    symbol_rate=Column(4, cell_as_int),
    frequency=Column(5, cell_as_float),
    power=Column(6, cell_as_float),
)


def _extract_table_rows(soup: BeautifulSoup, table_id: str) -> list[list[Tag]]:
    table = soup.find("table", id=table_id)
    if table is None:
        log.warning("Table not found", table=table_id)
        return []
    rows = table.find_all("tr")
    log.debug("Rows", table=table_id, count=len(rows))
    # First row is always the header
    return [row.find_all("td") for row in rows[1:]]


def _convert_row(
    cells: list[Tag], columns: OrderedDict[str, Column], table_id: str, row_idx: int
) -> dict[str, int | float | str]:
    fields = {}
    for name, column in columns.items():
        if column.index >= len(cells):
            raise MalformedModemData(
                f"{table_id} row {row_idx} has {len(cells)} cells; no column {column.index} for {name}"
            )
        fields[name] = column.convert(cells[column.index])
    return fields


def extract_downstream_channels(soup: BeautifulSoup) -> tuple[DownstreamChannel, ...]:
    out = []
    for idx, cells in enumerate(_extract_table_rows(soup, DS_TABLE_ID), start=1):
        out.append(
            DownstreamChannel(
                channel=idx, **_convert_row(cells, DS_COLUMNS, DS_TABLE_ID, idx)
            )
        )
    return tuple(out)


def extract_upstream_channels(soup: BeautifulSoup) -> tuple[UpstreamChannel, ...]:
    out = []
    for idx, cells in enumerate(_extract_table_rows(soup, US_TABLE_ID), start=1):
        fields = _convert_row(cells, US_COLUMNS, US_TABLE_ID, idx)
        fields["channel_type"] = fields["channel_type"].strip()
        out.append(UpstreamChannel(channel=idx, **fields))
    return tuple(out)


def parse_status_page(raw: bytes | str) -> ModemSnapshot:
    """Turn the raw status page into a snapshot.

    A table that is missing entirely just produces no channels for that direction.
    Any cell that can't be converted fails the whole page; publishing half a table is worse
        than publishing nothing.
    """
    try:
        soup = BeautifulSoup(raw, "html.parser")
    except ParserRejectedMarkup as e:
        # html.parser gives up on some junk (e.g. bogus <![ ... ]> sections) outright
        raise MalformedModemData(
            "Modem returned unparseable HTML", payload=raw[:200]
        ) from e
    snapshot = ModemSnapshot(
        downstream=extract_downstream_channels(soup),
        upstream=extract_upstream_channels(soup),
    )
    log.debug(
        "Parsed status page",
        downstream=len(snapshot.downstream),
        upstream=len(snapshot.upstream),
    )
    return snapshot
