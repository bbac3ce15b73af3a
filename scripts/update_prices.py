"""
Applies new catalog prices from csv file (columns: item_id, price) keeping price history.

python manage.py runscript update_prices --script-args scripts/csv_files/price_update.csv
"""
from decimal import Decimal

import pandas as pd

from menu.models import Item
from menu.pricing import record_price_change


def run(*args):
    file_path = args[0] if args else "scripts/csv_files/price_update.csv"
    df = pd.read_csv(file_path, dtype={"item_id": int, "price": str})

    items = Item.objects.alive().in_bulk(df["item_id"].tolist())
    for record in df.to_dict(orient="records"):
        item = items.get(record["item_id"])
        if item is None:
            print(f"Item {record['item_id']} not found, skipped")
            continue
        if record_price_change(item, Decimal(record["price"]), actor_id=None) is not None:
            print(f"{item.name}: new price {record['price']}")
