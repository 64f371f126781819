import logging

import pytest

from app.ip_allowlist import AllowedHomeIP

APP_LOGGER = "HabitBackend"


class FakeCollection:
    """In-memory stand-in for a pymongo collection supporting equality filters."""

    def __init__(self, name):
        self.name = name
        self.documents = {}
        self.indexes = []
        self.validator = None

    @staticmethod
    def _matches(document, query):
        return all(document.get(key) == value for key, value in (query or {}).items())

    def find(self, query=None):
        return [dict(doc) for doc in self.documents.values() if self._matches(doc, query)]

    def find_one(self, query=None):
        found = self.find(query)
        return found[0] if found else None

    def insert_one(self, document):
        self.documents[document["_id"]] = dict(document)

    def replace_one(self, query, document, upsert=False):
        existing = self.find_one(query)
        if existing is not None:
            del self.documents[existing["_id"]]
        elif not upsert:
            return
        self.documents[document["_id"]] = dict(document)

    def delete_one(self, query):
        existing = self.find_one(query)
        if existing is not None:
            del self.documents[existing["_id"]]

    def create_index(self, keys, unique=False):
        self.indexes.append((keys, unique))


class FakeDatabase:
    """In-memory stand-in for the pymongo database calls made by schema and migrations."""

    def __init__(self):
        self.collections = {}
        self.created = set()
        self.commands = []

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def list_collection_names(self):
        return sorted(self.created)

    def create_collection(self, name, validator=None):
        if name in self.created:
            raise ValueError(f"collection {name} already exists")
        self.created.add(name)
        self[name].validator = validator
        return self[name]

    def command(self, command, name, validator=None):
        self.commands.append((command, name))
        self[name].validator = validator

    def drop_collection(self, name):
        self.created.discard(name)
        self.collections.pop(name, None)


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def app_log(caplog):
    caplog.set_level(logging.DEBUG, logger=APP_LOGGER)
    return caplog


@pytest.fixture
def no_home_ip():
    return AllowedHomeIP.parse("")


@pytest.fixture
def fake_db_factory():
    return FakeDatabase
