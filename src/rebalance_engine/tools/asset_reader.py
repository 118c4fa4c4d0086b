"""
Rebalance Engine Tool: Asset Reader
Read asset context snapshots from CSV or Excel files
and turn each row into an AssetContext.

Bad rows are skipped and reported as ProcessingError records.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from rebalance_engine.exceptions import (
    AssetParseError,
    ErrorSeverity,
    FileReadError,
    ProcessingError,
    RebalanceEngineException,
)
from rebalance_engine.schemas.recommendation_output import AssetContext
from rebalance_engine.tools.decimal_math import DecimalMath

logger = logging.getLogger(__name__)

# Exported portfolio sheets use inconsistent headers
COLUMN_ALIASES: dict[str, list[str]] = {
    "id": ["Asset ID", "AssetId", "ID", "id"],
    "symbol": ["Symbol", "Ticker", "Sym", "SYMBOL", "symbol"],
    "name": ["Name", "Asset Name", "Company Name", "Company"],
    "class_id": ["Class ID", "ClassId", "class_id"],
    "class_name": ["Class", "Class Name", "Asset Class", "class_name"],
    "subclass_id": ["Subclass ID", "SubclassId", "subclass_id"],
    "subclass_name": ["Subclass", "Subclass Name", "subclass_name"],
    "current_allocation": ["Current %", "Current Allocation", "Current Alloc", "current_allocation"],
    "target_allocation": ["Target %", "Target Allocation", "Target Midpoint", "target_allocation"],
    "allocation_gap": ["Gap", "Allocation Gap", "Gap %", "allocation_gap"],
    "score": ["Score", "Asset Score", "score"],
    "current_value": ["Value", "Current Value", "Market Value", "current_value"],
    "min_allocation_value": ["Min Allocation", "Minimum", "Min Allocation Value", "min_allocation_value"],
    "is_over_allocated": ["Over Allocated", "Over-Allocated", "Overallocated", "is_over_allocated"],
}

REQUIRED_COLUMNS = ("symbol", "current_allocation", "target_allocation", "score")

_TRUE_VALUES = {"true", "yes", "y", "1", "x"}

SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".xls")


def _find_column(df: pd.DataFrame, target: str) -> Optional[str]:
    """Find a column in the DataFrame matching known aliases."""
    aliases = COLUMN_ALIASES.get(target, [target])
    for alias in aliases:
        if alias in df.columns:
            return alias
        # Case-insensitive fallback
        for col in df.columns:
            if str(col).strip().lower() == alias.lower():
                return col
    return None


def _clean_cell(val: Any) -> Optional[str]:
    """Cell as stripped text, None for blanks and NaN."""
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def _parse_flag(val: Optional[str]) -> bool:
    return val is not None and val.strip().lower() in _TRUE_VALUES


def _load_frame(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileReadError(f"Asset file not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise FileReadError(
            f"Unsupported asset file type '{suffix}' for {path.name}; "
            f"expected one of {SUPPORTED_SUFFIXES}"
        )
    try:
        if suffix == ".csv":
            return pd.read_csv(path, dtype=str, keep_default_na=False)
        return pd.read_excel(path, dtype=str, engine="openpyxl")
    except (OSError, ValueError) as e:
        raise FileReadError(f"Unable to read {path.name}: {e}")


def _row_to_asset(row: dict[str, Optional[str]], row_num: int, dmath: DecimalMath) -> AssetContext:
    symbol = row.get("symbol")
    if not symbol:
        raise AssetParseError(f"Row {row_num}: missing symbol")

    for col in REQUIRED_COLUMNS:
        if not row.get(col):
            raise AssetParseError(f"Row {row_num} ({symbol}): missing value for '{col}'")

    gap = row.get("allocation_gap")
    if gap is None:
        gap = dmath.subtract(
            dmath.parse(row["target_allocation"]),
            dmath.parse(row["current_allocation"]),
        )

    return AssetContext(
        id=row.get("id") or symbol,
        symbol=symbol,
        name=row.get("name"),
        class_id=row.get("class_id"),
        class_name=row.get("class_name"),
        subclass_id=row.get("subclass_id"),
        subclass_name=row.get("subclass_name"),
        current_allocation=row["current_allocation"],
        target_allocation=row["target_allocation"],
        allocation_gap=gap,
        score=row["score"],
        current_value=row.get("current_value") or "0",
        min_allocation_value=row.get("min_allocation_value"),
        is_over_allocated=_parse_flag(row.get("is_over_allocated")),
    )


def read_asset_file(file_path: str | Path) -> tuple[list[AssetContext], list[ProcessingError]]:
    """
    Read one CSV/XLSX asset snapshot.

    Args:
        file_path: Path to the asset file.

    Returns:
        (assets, errors): assets in file order, one ProcessingError
        (WARNING) per skipped row.

    Raises:
        FileReadError: file missing, unsupported or unreadable.
        AssetParseError: a required column is absent from the header.
    """
    path = Path(file_path)
    df = _load_frame(path)

    column_map = {target: _find_column(df, target) for target in COLUMN_ALIASES}
    missing = [c for c in REQUIRED_COLUMNS if column_map[c] is None]
    if missing:
        raise AssetParseError(
            f"{path.name}: missing required column(s) {missing}; "
            f"found {list(df.columns)}"
        )

    dmath = DecimalMath()
    assets: list[AssetContext] = []
    errors: list[ProcessingError] = []

    for idx, raw in enumerate(df.to_dict(orient="records")):
        row_num = idx + 2  # header is row 1
        row = {
            target: _clean_cell(raw.get(col)) if col is not None else None
            for target, col in column_map.items()
        }
        try:
            assets.append(_row_to_asset(row, row_num, dmath))
        except (RebalanceEngineException, ValueError) as e:
            logger.warning(f"[AssetReader] {path.name} row {row_num} skipped: {e}")
            errors.append(ProcessingError.from_exception(
                file_name=path.name,
                error_type="ASSET_PARSE_ERROR",
                exception=e,
                severity=ErrorSeverity.WARNING,
                context={"row": row_num, "symbol": row.get("symbol")},
            ))

    logger.info(
        f"[AssetReader] {path.name}: {len(assets)} assets read, {len(errors)} rows skipped"
    )
    return assets, errors
