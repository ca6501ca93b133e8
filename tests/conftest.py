"""Ortak test fixture'ları - bellek içi DynamoDB taklidi ve sağlayıcılar."""

import copy
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError

from hybrid_inventory.config import StorageConfig
from hybrid_inventory.events import EventBus
from hybrid_inventory.models.entities import StorageMode
from hybrid_inventory.storage.backends import MemoryStore
from hybrid_inventory.storage.coordinator import HybridCoordinator
from hybrid_inventory.storage.local import LocalProvider
from hybrid_inventory.storage import validation
from hybrid_inventory.storage.remote import RemoteProvider


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _assert_no_floats(value, path="Item"):
    # boto3 float kabul etmez; gerçek davranışı taklit et
    if isinstance(value, float):
        raise TypeError(f"Float types are not supported. Use Decimal types instead ({path})")
    if isinstance(value, dict):
        for k, v in value.items():
            _assert_no_floats(v, f"{path}.{k}")
    if isinstance(value, list):
        for i, v in enumerate(value):
            _assert_no_floats(v, f"{path}[{i}]")


class FakeBatchWriter:
    def __init__(self, table):
        self.table = table

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def put_item(self, Item):
        self.table.put_item(Item=Item)


class FakeTable:
    """boto3 Table kaynağının ihtiyaç duyulan alt kümesi."""

    def __init__(self, resource, name, page_size=2):
        self.resource = resource
        self.name = name
        self.page_size = page_size
        self.items = {}
        self.scan_calls = 0

    def _check(self):
        if self.resource.fail_with is not None:
            raise self.resource.fail_with

    def put_item(self, Item, ConditionExpression=None):
        self._check()
        _assert_no_floats(Item)
        exists = Item["id"] in self.items
        if ConditionExpression == "attribute_not_exists(id)" and exists:
            raise _client_error("ConditionalCheckFailedException", "PutItem")
        if ConditionExpression == "attribute_exists(id)" and not exists:
            raise _client_error("ConditionalCheckFailedException", "PutItem")
        self.items[Item["id"]] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        self._check()
        item = self.items.get(Key["id"])
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def delete_item(self, Key, ConditionExpression=None):
        self._check()
        if ConditionExpression == "attribute_exists(id)" and Key["id"] not in self.items:
            raise _client_error("ConditionalCheckFailedException", "DeleteItem")
        self.items.pop(Key["id"], None)
        return {}

    def scan(self, ExclusiveStartKey=None):
        self._check()
        self.scan_calls += 1
        ids = sorted(self.items)
        if ExclusiveStartKey is not None:
            ids = [i for i in ids if i > ExclusiveStartKey["id"]]
        page = ids[: self.page_size]
        response = {"Items": [copy.deepcopy(self.items[i]) for i in page], "Count": len(page)}
        if len(ids) > self.page_size:
            response["LastEvaluatedKey"] = {"id": page[-1]}
        return response

    def batch_writer(self):
        self._check()
        return FakeBatchWriter(self)


class FakeDynamoClient:
    def __init__(self, resource):
        self.resource = resource
        self.describe_calls = []

    def describe_table(self, TableName):
        if self.resource.fail_with is not None:
            raise self.resource.fail_with
        self.describe_calls.append(TableName)
        return {"Table": {"TableName": TableName, "TableStatus": "ACTIVE"}}


class FakeDynamoResource:
    """boto3.resource('dynamodb') yerine geçen bellek içi kaynak."""

    def __init__(self, page_size=2):
        self.page_size = page_size
        self.tables = {}
        self.fail_with = None
        self.meta = SimpleNamespace(client=FakeDynamoClient(self))

    def Table(self, name):
        if name not in self.tables:
            self.tables[name] = FakeTable(self, name, self.page_size)
        return self.tables[name]


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    # Üretim maliyeti (12) testleri yavaşlatır
    monkeypatch.setattr(validation, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def fake_dynamodb():
    return FakeDynamoResource()


@pytest.fixture
def local_provider():
    return LocalProvider(MemoryStore(), seed_defaults=False)


@pytest.fixture
def remote_provider(fake_dynamodb):
    return RemoteProvider(fake_dynamodb)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def make_coordinator(local_provider, remote_provider, event_bus):
    def _make(mode=StorageMode.LOCAL, **config_overrides):
        config = StorageConfig(mode=mode, **config_overrides)
        return HybridCoordinator(local_provider, remote_provider, config=config, event_bus=event_bus)

    return _make


def sample_product(**overrides):
    product = {
        "name": "Test Product",
        "sku": "TST001",
        "costPrice": 100,
        "sellingPrice": 150,
        "stock": 20,
        "minimumStock": 5,
        "maximumStock": 50,
    }
    product.update(overrides)
    return product
