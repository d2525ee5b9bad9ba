"""Transaction import from broker CSV exports.

Each row is stored in its own unit of work, together with the position it
opens when its symbol is new, so a bad row is skipped without undoing the
rows before it and without leaving an empty position behind. Rows are
applied in file order; same-date rows therefore keep their file order in
the ledger.

Recognised columns (case-insensitive, first match wins):

    date         Date, Transaction Date, Trade Date
    type         Type, Action, Transaction Type
    symbol       Symbol, Ticker
    shares       Shares, Quantity
    price        Price, Price Per Share
    amount       Amount, Total, Total Amount
    fees         Fees, Commission
    description  Description, Memo
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import pandas as pd

from stakehold.config.defaults import DEFAULT_OVERSELL_POLICY
from stakehold.errors import StakeholdError
from stakehold.ledger.positions import open_position
from stakehold.ledger.transactions import insert_transaction, validate_transaction
from stakehold.ledger.types import TRADE_TYPES, ZERO, TransactionType
from stakehold.storage.queries import find_position_by_symbol

logger = logging.getLogger(__name__)

_COLUMN_ALIASES = {
    "date": ("date", "transaction date", "trade date"),
    "type": ("type", "action", "transaction type"),
    "symbol": ("symbol", "ticker"),
    "shares": ("shares", "quantity"),
    "price": ("price", "price per share"),
    "amount": ("amount", "total", "total amount"),
    "fees": ("fees", "commission"),
    "description": ("description", "memo"),
}

# Broker wording → transaction type
_TYPE_ALIASES = {
    "BOUGHT": TransactionType.BUY,
    "SOLD": TransactionType.SELL,
    "DEPOSIT": TransactionType.CONTRIBUTION,
    "DIV": TransactionType.DIVIDEND,
    "INTEREST": TransactionType.INCOME,
    "FEE": TransactionType.EXPENSE,
}

_BLANKS = frozenset({"", "-", "--", "N/A", "NAN"})


@dataclass
class ImportResult:
    """Result of a transaction import run."""

    transactions_imported: int = 0
    positions_created: int = 0
    rows_skipped: int = 0
    errors: list[str] = field(default_factory=list)


def _safe_decimal(val: Any) -> Decimal | None:
    """Parse a money/quantity cell; blanks and dashes are None.

    Strips currency symbols and thousands separators, and reads
    ``(123.45)`` as a negative number.
    """
    if val is None:
        return None
    text = str(val).strip().replace("$", "").replace(",", "")
    if text.upper() in _BLANKS:
        return None
    if text.startswith("(") and text.endswith(")"):
        text = "-" + text[1:-1]
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"not a number: {val!r}") from None


def _parse_type(val: Any) -> TransactionType:
    text = str(val or "").strip().upper()
    if text in _TYPE_ALIASES:
        return _TYPE_ALIASES[text]
    try:
        return TransactionType(text)
    except ValueError:
        raise ValueError(f"unknown transaction type: {val!r}") from None


def _opening_price(row: dict[str, Any]) -> Decimal:
    if row["price_per_share"] is not None:
        return row["price_per_share"]
    if row["shares"]:
        return row["total_amount"] / row["shares"]
    return ZERO


def _resolve_columns(df: pd.DataFrame) -> dict[str, str]:
    """Map canonical field names to the frame's actual column names."""
    lower = {str(c).strip().lower(): c for c in df.columns}
    resolved = {}
    for canonical, aliases in _COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in lower:
                resolved[canonical] = lower[alias]
                break
    return resolved


def parse_transactions_frame(df: pd.DataFrame) -> tuple[list[dict[str, Any]], list[str]]:
    """Parse a CSV frame into transaction dicts.

    Returns
    -------
    tuple[list[dict], list[str]]
        Parsed rows (keys: row, transaction_date, transaction_type, symbol,
        shares, price_per_share, total_amount, fees, description) and
        per-row error messages for rows that could not be parsed.
    """
    if df is None or df.empty:
        return [], []

    columns = _resolve_columns(df)
    missing = [c for c in ("date", "type") if c not in columns]
    if missing:
        return [], [f"missing required column(s): {', '.join(missing)}"]

    def cell(row: pd.Series, name: str) -> Any:
        return row.get(columns[name]) if name in columns else None

    parsed: list[dict[str, Any]] = []
    errors: list[str] = []

    for index, row in df.iterrows():
        line = int(index) + 2  # header is line 1
        try:
            txn_type = _parse_type(cell(row, "type"))
            raw_date = pd.to_datetime(cell(row, "date") or None)
            if pd.isna(raw_date):
                raise ValueError("missing date")
            txn_date = raw_date.date()
            shares = _safe_decimal(cell(row, "shares"))
            price = _safe_decimal(cell(row, "price"))
            amount = _safe_decimal(cell(row, "amount"))
            fees = _safe_decimal(cell(row, "fees")) or ZERO
        except (ValueError, TypeError) as e:
            errors.append(f"line {line}: {e}")
            continue

        # Brokers sign sells and withdrawals; the ledger stores magnitudes.
        if shares is not None:
            shares = abs(shares)
        if amount is not None:
            amount = abs(amount)
        if amount is None and shares is not None and price is not None:
            amount = shares * price
        if amount is None:
            errors.append(f"line {line}: no amount")
            continue

        symbol = str(cell(row, "symbol") or "").strip().upper() or None
        parsed.append({
            "row": line,
            "transaction_date": txn_date,
            "transaction_type": txn_type,
            "symbol": symbol,
            "shares": shares,
            "price_per_share": price,
            "total_amount": amount,
            "fees": abs(fees),
            "description": str(cell(row, "description") or "").strip(),
        })

    return parsed, errors


def import_transactions_csv(
    db: Any,
    account_id: str,
    csv_path: str | Path,
    *,
    create_positions: bool = True,
    category: str = "EQUITY",
    user_id: str | None = None,
    oversell_policy: str = DEFAULT_OVERSELL_POLICY,
) -> ImportResult:
    """Import a CSV of transactions into one account.

    Parameters
    ----------
    db : Database
        Open database.
    account_id : str
        Account that receives every row.
    csv_path : str | Path
        CSV file to read.
    create_positions : bool
        Open a position for a symbol that has none in the account yet.
        When False such rows are skipped.
    category : str
        Category for newly created positions.
    user_id : str | None
        When given, the account must belong to this user.
    oversell_policy : str
        Passed through to the ledger for BUY/SELL rows.
    """
    result = ImportResult()
    path = Path(csv_path).expanduser()
    if not path.exists():
        result.errors.append(f"File not found: {path}")
        return result

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    rows, parse_errors = parse_transactions_frame(df)
    result.errors.extend(parse_errors)
    result.rows_skipped += len(parse_errors)

    positions: dict[str, str] = {}
    for row in rows:
        symbol = row.pop("symbol")
        line = row.pop("row")
        opened = None
        try:
            txn = validate_transaction(account_id, **row)
            with db.transaction() as cur:
                position_id = positions.get(symbol) if symbol else None
                if symbol and position_id is None:
                    existing = find_position_by_symbol(cur, account_id, symbol)
                    if existing is not None:
                        position_id = existing["id"]
                    elif create_positions:
                        opened = open_position(
                            cur, account_id, symbol,
                            symbol=symbol,
                            category=category,
                            current_price=_opening_price(row),
                            user_id=user_id,
                        )
                        position_id = opened.id
                    elif row["transaction_type"] in TRADE_TYPES:
                        raise ValueError(f"no position for {symbol}")
                txn = txn.model_copy(update={"position_id": position_id})
                insert_transaction(cur, txn, user_id=user_id, oversell_policy=oversell_policy)
        except (StakeholdError, ValueError) as e:
            logger.warning("Skipping line %d of %s: %s", line, path.name, e)
            result.errors.append(f"line {line}: {e}")
            result.rows_skipped += 1
            continue

        if symbol and position_id is not None:
            positions[symbol] = position_id
        if opened is not None:
            logger.info("Opened position %s (%s) for import", opened.id, symbol)
            result.positions_created += 1
        result.transactions_imported += 1

    logger.info(
        "Imported %d transaction(s) from %s (%d skipped, %d position(s) created)",
        result.transactions_imported, path.name,
        result.rows_skipped, result.positions_created,
    )
    return result
