"""Standalone export script — write invoices or work orders to CSV/XLSX."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from job_desk.app import create_repository
from job_desk.io.csv_handler import export_invoices_csv, export_work_orders_csv
from job_desk.io.excel_handler import (
    export_invoices_excel,
    export_work_orders_excel,
)

_EXPORTERS = {
    ("invoices", ".csv"): export_invoices_csv,
    ("invoices", ".xlsx"): export_invoices_excel,
    ("work_orders", ".csv"): export_work_orders_csv,
    ("work_orders", ".xlsx"): export_work_orders_excel,
}


def main():
    if len(sys.argv) < 4:
        print("Usage: python export_csv.py <invoices|work_orders> "
              "<company_id> <output.csv|output.xlsx>")
        sys.exit(1)

    data_type = sys.argv[1].lower()
    company_id = int(sys.argv[2])
    filepath = Path(sys.argv[3])

    exporter = _EXPORTERS.get((data_type, filepath.suffix.lower()))
    if exporter is None:
        print(f"Cannot export {data_type} to {filepath.suffix or 'that file'}."
              " Use invoices or work_orders with .csv or .xlsx.")
        sys.exit(1)

    repo = create_repository()
    count = exporter(repo, company_id, filepath)
    print(f"Exported {count} {data_type} to {filepath}")


if __name__ == "__main__":
    main()
