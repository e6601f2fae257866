"""Brokerage export import.

The export is one text file with two comma-separated sections: a positions
table, then a transactions table whose header contains ``Trade Date``. Each
section is parsed with pandas and folded into a :class:`HoldingsStore`.
"""

from __future__ import annotations

import io
from collections import defaultdict
from datetime import date, datetime
from pathlib import Path

import pandas as pd
import structlog

from rebalancer.domain.assets import AssetSymbol, AssetVector, resolve_symbol
from rebalancer.domain.ledger import Transaction, TransactionType
from rebalancer.exceptions import ExportFormatError
from rebalancer.services.holdings_store import HoldingsStore

logger = structlog.get_logger(__name__)

POSITION_COLUMNS = ["Account Number", "Symbol", "Shares", "Share Price", "Total Value"]
TRANSACTION_COLUMNS = [
    "Account Number",
    "Trade Date",
    "Symbol",
    "Shares",
    "Net Amount",
    "Transaction Type",
]
TRANSACTION_MARKER = "Trade Date"
TRADE_DATE_FORMAT = "%Y-%m-%d"
# Table rows have at least five fields; anything shorter is a title or note line.
MIN_FIELD_SEPARATORS = 4


def split_sections(text: str) -> tuple[list[str], list[str]]:
    """Split the export into (position lines, transaction lines).

    Lines that are not table rows are dropped from both sections.
    """
    positions: list[str] = []
    transactions: list[str] = []
    in_transactions = False
    for line in text.splitlines():
        if TRANSACTION_MARKER in line:
            in_transactions = True
        if line.count(",") < MIN_FIELD_SEPARATORS:
            continue
        (transactions if in_transactions else positions).append(line)
    return positions, transactions


def _read_section(lines: list[str]) -> pd.DataFrame:
    frame = pd.read_csv(
        io.StringIO("\n".join(lines)),
        dtype=str,
        keep_default_na=False,
        index_col=False,
        on_bad_lines="skip",
        skipinitialspace=True,
    )
    frame.columns = [str(column).strip() for column in frame.columns]
    return frame.fillna("")


def _require_columns(frame: pd.DataFrame, columns: list[str], section: str) -> None:
    missing = [column for column in columns if column not in frame.columns]
    if missing:
        raise ExportFormatError(f"{section} header is missing columns: {', '.join(missing)}")


def _to_float(value: str, column: str) -> float:
    text = value.strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError as e:
        raise ExportFormatError(f"Invalid number in {column!r}: {value!r}") from e


def _to_date(value: str) -> date:
    try:
        return datetime.strptime(value.strip(), TRADE_DATE_FORMAT).date()
    except ValueError as e:
        raise ExportFormatError(f"Invalid trade date: {value!r}") from e


def _parse_positions(
    frame: pd.DataFrame,
) -> tuple[dict[str, AssetVector], dict[str, AssetVector], AssetVector]:
    values: dict[str, dict[AssetSymbol, float]] = defaultdict(lambda: defaultdict(float))
    shares: dict[str, dict[AssetSymbol, float]] = defaultdict(lambda: defaultdict(float))
    prices: dict[AssetSymbol, float] = {}

    for row in frame[POSITION_COLUMNS].itertuples(index=False, name=None):
        account, raw_symbol, share_count, share_price, total_value = (v.strip() for v in row)
        # Single-character symbols mark subtotal and note rows
        if not account or len(raw_symbol) <= 1:
            continue

        symbol = resolve_symbol(raw_symbol)
        dollars = _to_float(total_value, "Total Value")
        values[account][symbol] += dollars

        if symbol in (AssetSymbol.CASH, AssetSymbol.OTHER):
            # No usable per-share price, so the share vector carries dollars
            shares[account][symbol] += dollars
            if symbol is AssetSymbol.OTHER:
                logger.debug("unsupported_ticker_aggregated", ticker=raw_symbol, account=account)
            continue

        shares[account][symbol] += _to_float(share_count, "Shares")
        price = _to_float(share_price, "Share Price")
        if price > 0:
            prices[symbol] = price

    accounts = {account: AssetVector.from_mapping(v) for account, v in values.items()}
    accounts_by_shares = {account: AssetVector.from_mapping(s) for account, s in shares.items()}
    return accounts, accounts_by_shares, AssetVector.quotes(prices)


def _parse_transactions(frame: pd.DataFrame) -> list[Transaction]:
    transactions = []
    for row in frame[TRANSACTION_COLUMNS].itertuples(index=False, name=None):
        account, trade_date, raw_symbol, share_count, net_amount, kind_label = (
            v.strip() for v in row
        )
        if not account or not trade_date:
            continue
        transactions.append(
            Transaction(
                account_id=account,
                trade_date=_to_date(trade_date),
                symbol=resolve_symbol(raw_symbol),
                shares=_to_float(share_count, "Shares"),
                net_amount=_to_float(net_amount, "Net Amount"),
                kind=TransactionType.from_label(kind_label),
                kind_label=kind_label,
            )
        )
    return transactions


def parse_export(text: str) -> HoldingsStore:
    """
    Parse a brokerage export into a holdings store.

    Args:
        text: Full export contents

    Returns:
        HoldingsStore with per-account values and shares, export quotes and
        the transaction ledger

    Raises:
        ExportFormatError: If the positions table is absent, a section header
            lacks a required column, or a number or date does not parse
    """
    position_lines, transaction_lines = split_sections(text)
    if not position_lines:
        raise ExportFormatError("Export has no positions table")

    positions = _read_section(position_lines)
    _require_columns(positions, POSITION_COLUMNS, "Positions")
    accounts, accounts_by_shares, quotes = _parse_positions(positions)

    transactions: list[Transaction] = []
    if transaction_lines:
        ledger = _read_section(transaction_lines)
        _require_columns(ledger, TRANSACTION_COLUMNS, "Transactions")
        transactions = _parse_transactions(ledger)

    logger.info(
        "export_parsed",
        accounts=sorted(accounts),
        transactions=len(transactions),
        missing_quotes=[s.ticker for s in quotes.missing_quotes()],
    )
    return HoldingsStore(
        accounts=accounts,
        accounts_by_shares=accounts_by_shares,
        quotes=quotes,
        transactions=tuple(transactions),
    )


def load_export(path: str | Path) -> HoldingsStore:
    """Read and parse an export file."""
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except OSError as e:
        raise ExportFormatError(f"Could not read export {path}: {e}") from e
    return parse_export(text)
