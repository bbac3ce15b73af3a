"""
File is used to load menu and tables from csv files into database.
"""
import os

import numpy as np
import pandas as pd
import psycopg2.extras as extras
from django.conf import settings
from django.db import connection, transaction
from django.utils import timezone

CSV_DIR = os.path.join(settings.BASE_DIR, "scripts/csv_files")


def run():
    now = timezone.now()
    with transaction.atomic():
        # app "menu":
        df_sections = read_csv("section.csv")
        execute_addition(with_audit_columns(df_sections, now), "menu_section")

        df_items = read_csv("item.csv")
        execute_addition(with_audit_columns(df_items, now), "menu_item")

        # every loaded price starts its history at load time
        df_history = df_items[["id", "price"]].rename(columns={"id": "item_id"}).assign(effective_from=now)
        execute_addition(df_history, "menu_itempricehistory")

        # app "seating":
        df_tables = read_csv("table.csv").assign(status="AVAILABLE")
        execute_addition(with_audit_columns(df_tables, now), "seating_table")

        reset_sequences(["menu_section", "menu_item", "seating_table"])


def read_csv(file_name: str) -> pd.DataFrame:
    return pd.read_csv(os.path.join(CSV_DIR, file_name)).sort_values("id")


def with_audit_columns(df: pd.DataFrame, now) -> pd.DataFrame:
    return df.assign(created_at=now, is_deleted=False)


def execute_addition(df: pd.DataFrame, table: str) -> None:
    df = df.astype(object).replace(np.nan, None)  # replace all nan with None
    tuples = [tuple(x) for x in df.to_numpy()]

    cols = '"' + '","'.join(list(df.columns)) + '"'
    query = f"INSERT INTO {table}({cols}) VALUES %s"

    with connection.cursor() as cursor:
        extras.execute_values(cursor, query, tuples)

    print(f"the dataframe is inserted into {table}")


def reset_sequences(tables: list[str]) -> None:
    """
    Moves id sequences past explicitly inserted ids
    """
    with connection.cursor() as cursor:
        for table in tables:
            cursor.execute(
                f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), COALESCE(MAX(id), 1)) FROM {table}"
            )
