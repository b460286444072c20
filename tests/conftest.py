from __future__ import annotations

import sys
from copy import deepcopy
from pathlib import Path

import mongomock
import pytest
from pymongo.errors import CollectionInvalid

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from vitalsdb.config_loader import Settings


class TimeseriesDB:
    """mongomock database that also keeps create_collection options.

    mongomock rejects time-series options, so they are recorded here and
    reported back through list_collections the way the server does.
    """

    def __init__(self, name: str = "vitals_db"):
        self.name = name
        self.raw = mongomock.MongoClient()[name]
        self.options: dict[str, dict] = {}
        self.create_calls: list[str] = []

    def create_collection(self, name, **options):
        self.create_calls.append(name)
        if name in self.raw.list_collection_names():
            raise CollectionInvalid(f"collection {name} already exists")
        self.raw.create_collection(name)
        self.options[name] = deepcopy(options)
        return self.raw[name]

    def list_collections(self, filter=None):
        wanted = (filter or {}).get("name")
        out = []
        for name in sorted(self.raw.list_collection_names()):
            if wanted is not None and name != wanted:
                continue
            opts = deepcopy(self.options.get(name, {}))
            out.append(
                {
                    "name": name,
                    "type": "timeseries" if "timeseries" in opts else "collection",
                    "options": opts,
                }
            )
        return iter(out)

    def __getitem__(self, name):
        return self.raw[name]


@pytest.fixture
def db():
    return TimeseriesDB()


@pytest.fixture
def settings():
    return Settings()


def user_indexes(coll) -> dict:
    return {
        name: [tuple(p) for p in info["key"]]
        for name, info in coll.index_information().items()
        if name != "_id_"
    }
