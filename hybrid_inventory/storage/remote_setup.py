"""DynamoDB tablolarının oluşturulması.

Her yönetilen koleksiyon için bir tablo: <önek><wire adı>, hash key "id".
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import ClientError

from hybrid_inventory.storage.field_mapping import WIRE_TABLE_NAMES

logger = logging.getLogger(__name__)


def table_definitions(table_prefix: str = "inventory_") -> list[dict]:
    return [
        {
            "TableName": f"{table_prefix}{wire_name}",
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "AttributeDefinitions": [{"AttributeName": "id", "AttributeType": "S"}],
            "BillingMode": "PAY_PER_REQUEST",
        }
        for wire_name in WIRE_TABLE_NAMES.values()
    ]


TABLE_DEFINITIONS = table_definitions()


def create_tables(dynamodb_client: Any, table_prefix: str = "inventory_", wait: bool = True) -> list[str]:
    """Eksik tabloları oluşturur; oluşturulan tablo adlarını döndürür."""
    created = []
    for table_def in table_definitions(table_prefix):
        table_name = table_def["TableName"]
        try:
            dynamodb_client.describe_table(TableName=table_name)
            logger.info("%s zaten mevcut, atlanıyor", table_name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceNotFoundException":
                raise
            logger.info("%s oluşturuluyor...", table_name)
            dynamodb_client.create_table(**table_def)
            if wait:
                # Tablonun aktif olmasını bekle
                dynamodb_client.get_waiter("table_exists").wait(TableName=table_name)
            created.append(table_name)
    return created
