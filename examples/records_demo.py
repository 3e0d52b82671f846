"""
Demonstration of the record API against a live worksheet.

This script clears a worksheet, writes a few records, then reads, updates and
deletes them, printing each result.

Usage:
    python examples/records_demo.py <spreadsheet key or URL> [worksheet]

The worksheet's first row must hold the headers ``id``, ``Name``, ``Age`` and
``Dept``. Every data row below it is deleted.

Authentication: requires either a service account JSON at
~/.config/gspread/service_account.json or OAuth credentials at
~/.config/gspread/credentials.json (browser flow on first use).
"""

import logging
import sys

import gspread

from sheetrecords import open_table


def _get_gspread_client() -> gspread.Client:
    """Authenticate with Google Sheets, trying service account then OAuth."""
    try:
        gc = gspread.service_account()
        print("✓ Authenticated via service account")
        return gc
    except FileNotFoundError:
        pass
    try:
        gc = gspread.oauth()
        print("✓ Authenticated via OAuth")
        return gc
    except FileNotFoundError as exc:
        print(f"✗ Could not authenticate with Google Sheets: {exc}")
        print()
        print("Set up credentials using one of:")
        print(
            "  • Service account: place key at ~/.config/gspread/service_account.json"
        )
        print("  • OAuth: place credentials at ~/.config/gspread/credentials.json")
        sys.exit(1)


def main():
    """Run a create / read / update / delete cycle on one worksheet."""
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 70)
    print("sheetrecords Demo")
    print("=" * 70)
    print()

    print("Step 1: Authenticating with Google Sheets...")
    gc = _get_gspread_client()
    options = {"storeLocator": sys.argv[1]}
    if len(sys.argv) > 2:
        options["sheetName"] = sys.argv[2]
    table = open_table(gc, **options)
    print()

    print("Step 2: Clearing existing data rows...")
    print("  cleared:", table.clear_data())
    print()

    print("Step 3: Creating records...")
    created = table.create_many([
        {"id": "e1", "Name": "Alice", "Age": 30, "Dept": "eng"},
        {"id": "e2", "Name": "Bob", "Age": 45, "Dept": "eng"},
        {"id": "e3", "Name": "Charlie", "Age": 28, "Dept": "sales"},
    ])
    print(f"  created {created} record(s)")
    print("  duplicate id accepted:", table.create({"id": "e1", "Name": "Again"}))
    print()

    print("Step 4: Reading...")
    print("  find_by_id('e2'):", table.find_by_id("e2"))
    print("  engineers by age:", table.find_many({"where": {"Dept": "eng"}, "orderBy": [("Age", "DESC")]}))
    print("  bracketed query:", table.query("select [Name] where [Age] > 29"))
    print()

    print("Step 5: Updating and deleting...")
    print("  update_many(Dept=eng):", table.update_many({"Dept": "eng"}, {"Dept": "platform"}))
    print("  delete_by_id('e3'):", table.delete_by_id("e3"))
    print()

    print("Step 6: Final contents:")
    print(table.to_frame().to_string(index=False))
    print()

    print("=" * 70)
    print("Demo complete!")
    print("=" * 70)


if __name__ == "__main__":
    main()
