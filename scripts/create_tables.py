"""Create the TallyUp DynamoDB tables and optionally seed sample merchants.

Usage:
    python scripts/create_tables.py --endpoint-url http://localhost:4566 --seed
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": "tallyup-merchant-settings"},
    {"name": "tallyup-pipeline-status"},
]

SAMPLE_MERCHANTS: list[dict[str, Any]] = [
    {
        "merchant_id": "demo-eastern", "shop_name": "Harbor Street Salon",
        "local_report_time": "21:00:00", "timezone": "US/Eastern",
        "fetch_delay_minutes": 1, "report_delay_minutes": 2,
    },
    {
        "merchant_id": "demo-pacific", "shop_name": "Sunset Barbers",
        "local_report_time": "20:30:00", "timezone": "US/Pacific",
        "fetch_delay_minutes": 1, "report_delay_minutes": 2,
    },
    {
        "merchant_id": "demo-hawaii", "shop_name": "Kona Nails",
        "local_report_time": "19:00:00", "timezone": "US/Hawaii",
        "fetch_delay_minutes": 2, "report_delay_minutes": 3,
    },
]


def create_tables(ddb: Any, suffix: str = "") -> list[str]:
    """Create both tables. Skips any that already exist; returns the ones created."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])
    created: list[str] = []

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        created.append(table_name)
        print(f"  Created table {table_name}")
    return created


def seed_merchants(ddb: Any, suffix: str = "") -> int:
    """Write the sample merchant settings rows."""
    tbl = ddb.Table(f"tallyup-merchant-settings{suffix}")
    with tbl.batch_writer() as batch:
        for merchant in SAMPLE_MERCHANTS:
            batch.put_item(Item={"PK": f"MERCHANT#{merchant['merchant_id']}", "SK": "SETTINGS", **merchant})
    print(f"  Seeded {len(SAMPLE_MERCHANTS)} merchants")
    return len(SAMPLE_MERCHANTS)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create DynamoDB tables for TallyUp")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--seed", action="store_true", help="Also write sample merchant settings")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    if args.seed:
        print("Seeding merchants...")
        seed_merchants(ddb, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
