"""Generate rebalancing recommendations from an asset snapshot and write them to Excel.

Usage:
    python run_recommendations.py assets.csv --contribution 2000
    python run_recommendations.py assets.xlsx --contribution 2000 --dividends 150.25
    python run_recommendations.py assets.csv --contribution 500 --output results -v
"""

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from dotenv import load_dotenv
load_dotenv()

import pandas as pd
from openpyxl.styles import Font, PatternFill

from rebalance_engine.exceptions import OutputWriteError, RebalanceEngineException
from rebalance_engine.tools.recommendation_builder import run_recommendation_pipeline
from rebalance_engine.schemas.recommendation_output import RecommendationOutput
from rebalance_engine.tools.asset_reader import read_asset_file
from rebalance_engine.tools.context_builder import compute_total_investable
from rebalance_engine.tools.decimal_math import DecimalConfig, DecimalMath

_GREY = PatternFill(start_color="D9D9D9", end_color="D9D9D9", fill_type="solid")
_LIGHT_GREEN = PatternFill(start_color="90EE90", end_color="90EE90", fill_type="solid")
_YELLOW = PatternFill(start_color="FFFF00", end_color="FFFF00", fill_type="solid")


# ---------------------------------------------------------------------------
# CLI Argument Parsing
# ---------------------------------------------------------------------------

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Rebalance Engine — capital distribution recommendations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  python run_recommendations.py assets.csv --contribution 2000
  python run_recommendations.py assets.xlsx --contribution 2000 --dividends 150.25
""",
    )
    parser.add_argument("assets_file", help="CSV or XLSX asset snapshot")
    parser.add_argument(
        "--contribution", required=True,
        help="Fresh capital to invest (decimal string)",
    )
    parser.add_argument(
        "--dividends", default="0",
        help="Dividends received, added to the contribution (default: 0)",
    )
    parser.add_argument(
        "--output", default="output",
        help="Output directory (default: output)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=False,
        help="Debug logging, including each redistribution pass",
    )
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Excel Report
# ---------------------------------------------------------------------------

def _write_recommendations_excel(output: RecommendationOutput, out_path: Path) -> Path:
    """Write the recommendation run to a dated Excel file."""
    today = date.today().isoformat()
    filepath = out_path / f"recommendations_{today}.xlsx"

    # --- Summary ---
    summary_rows = [
        {"Field": "Generated At", "Value": output.generated_at.isoformat()},
        {"Field": "Total Investable", "Value": output.total_investable},
        {"Field": "Total Allocated", "Value": output.total_allocated},
        {"Field": "Assets", "Value": output.item_count},
        {"Field": "Over-Allocated", "Value": output.over_allocated_count},
        {"Field": "Received Redistribution", "Value": output.redistributed_count},
        {"Field": "", "Value": ""},
        {"Field": "Summary", "Value": output.summary},
    ]
    df_summary = pd.DataFrame(summary_rows)

    # --- Recommendations in rank order ---
    rows = []
    for item in output.items:
        b = item.breakdown
        rows.append({
            "Rank": item.sort_order + 1,
            "Symbol": item.symbol,
            "Class": b.class_name or "",
            "Subclass": b.subclass_name or "",
            "Score": item.score,
            "Current %": item.current_allocation,
            "Target %": item.target_allocation,
            "Gap %": item.allocation_gap,
            "Priority": b.priority,
            "Current Value": b.current_value,
            "Recommended": item.recommended_amount,
            "Redistributed From": b.redistributed_from or "",
            "Over-Allocated": "YES" if item.is_over_allocated else "",
        })
    df_items = pd.DataFrame(rows)

    try:
        with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
            df_summary.to_excel(writer, sheet_name="Summary", index=False)
            if not df_items.empty:
                df_items.to_excel(writer, sheet_name="Recommendations", index=False)
                _apply_row_formatting(writer.sheets["Recommendations"], output)
    except OSError as e:
        raise OutputWriteError(f"Cannot write {filepath.name}: {e}")

    return filepath


def _apply_row_formatting(ws, output: RecommendationOutput) -> None:
    """Grey out over-allocated rows, mark redistribution recipients."""
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row_idx, item in enumerate(output.items, start=2):
        if item.is_over_allocated:
            fill = _GREY
        elif item.breakdown.redistributed_from is not None:
            fill = _YELLOW
        elif Decimal(item.recommended_amount) > 0:
            fill = _LIGHT_GREEN
        else:
            continue
        for cell in ws[row_idx]:
            cell.fill = fill


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(assets_file: str, contribution: str, dividends: str = "0",
         output_dir: str = "output") -> int:
    out_path = Path(output_dir)
    out_path.mkdir(parents=True, exist_ok=True)

    try:
        dmath = DecimalMath(DecimalConfig.from_env())
        total = compute_total_investable(contribution, dividends)
        assets, errors = read_asset_file(assets_file)
    except RebalanceEngineException as e:
        print(f"\nERROR [{e.error_code}]: {e.message}")
        return 1

    print(f"[Assets] Read {len(assets)} assets from '{assets_file}'")
    for err in errors:
        print(f"  [skipped] {err.message}")

    try:
        output = run_recommendation_pipeline(assets, total, dmath)
    except RebalanceEngineException as e:
        print(f"\nERROR [{e.error_code}]: {e.message}")
        return 1
    print(f"[Recommendations] {output.summary}")
    for item in output.items:
        flag = " (over-allocated)" if item.is_over_allocated else ""
        print(f"  {item.sort_order + 1:>3}. {item.symbol:<10} {item.recommended_amount:>16}{flag}")

    try:
        report = _write_recommendations_excel(output, out_path)
    except OutputWriteError as e:
        print(f"\nERROR [{e.error_code}]: {e.message}")
        return 1
    print(f"[Recommendations] Saved: {report}")
    return 0


if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(main(
        assets_file=args.assets_file,
        contribution=args.contribution,
        dividends=args.dividends,
        output_dir=args.output,
    ))
