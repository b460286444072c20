from __future__ import annotations
from contextlib import contextmanager
import logging

from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.errors import (
    CollectionInvalid,
    ConfigurationError,
    ConnectionFailure,
    InvalidURI,
    OperationFailure,
)

from .config_loader import Settings
from .errors import MongoUnreachableError, SchemaConflictError, SetupError
from .schemas.vitals import META_FIELD, TIME_FIELD

logger = logging.getLogger(__name__)

# server error codes for index definitions that clash with an existing one
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86

VITALS_INDEXES = [
    # latest readings for one patient
    [(META_FIELD, ASCENDING), (TIME_FIELD, DESCENDING)],
    # latest readings across all patients
    [(TIME_FIELD, DESCENDING)],
]


def get_client(s: Settings) -> MongoClient:
    return MongoClient(s.mongo.uri, serverSelectionTimeoutMS=s.mongo.server_selection_timeout_ms)


def connect(s: Settings) -> MongoClient:
    try:
        client = get_client(s)
    except (InvalidURI, ValueError) as exc:
        raise SetupError(f"invalid MongoDB URI {s.mongo.uri!r}: {exc}") from exc
    except ConfigurationError as exc:
        # mongodb+srv hosts are resolved while the client is built
        raise MongoUnreachableError(f"MongoDB unreachable at {s.mongo.uri}: {exc}") from exc
    with connection_guard(f"MongoDB unreachable at {s.mongo.uri}"):
        client.admin.command("ping")
    return client


def get_db(s: Settings):
    return connect(s)[s.mongo.db]


@contextmanager
def connection_guard(what: str):
    """Turn a dropped or refused connection into MongoUnreachableError."""
    try:
        yield
    except ConnectionFailure as exc:
        raise MongoUnreachableError(f"{what}: {exc}") from exc


def index_name(keys) -> str:
    """Name the server gives an index created without an explicit name."""
    return "_".join(f"{field}_{direction}" for field, direction in keys)


def timeseries_options(s: Settings) -> dict:
    return {
        "timeseries": {
            "timeField": TIME_FIELD,
            "metaField": META_FIELD,
            "granularity": s.collection.granularity,
        },
        "expireAfterSeconds": s.collection.expire_after_seconds,
    }


def collection_info(db, name: str) -> dict | None:
    return next(iter(db.list_collections(filter={"name": name})), None)


def _option_drift(info: dict, s: Settings) -> list[str]:
    """Differences between an existing collection and the declared options."""
    name = s.collection.name
    options = info.get("options") or {}
    ts = options.get("timeseries")
    if not ts:
        return [f"collection '{name}' exists but is not a time-series collection"]

    want = timeseries_options(s)
    drift = []
    for key, expected in want["timeseries"].items():
        actual = ts.get(key)
        if actual != expected:
            drift.append(f"timeseries.{key} is {actual!r}, expected {expected!r}")
    actual_ttl = options.get("expireAfterSeconds")
    if actual_ttl != want["expireAfterSeconds"]:
        drift.append(
            f"expireAfterSeconds is {actual_ttl!r}, expected {want['expireAfterSeconds']!r}"
        )
    return drift


def _check_existing(info: dict, s: Settings) -> None:
    drift = _option_drift(info, s)
    if drift:
        raise SchemaConflictError(
            f"collection '{s.collection.name}' conflicts with declared layout: "
            + "; ".join(drift)
        )


def ensure_timeseries_collection(db, s: Settings) -> str:
    name = s.collection.name
    with connection_guard(f"lost connection while provisioning '{name}'"):
        return _ensure_timeseries_collection(db, s)


def _ensure_timeseries_collection(db, s: Settings) -> str:
    name = s.collection.name
    info = collection_info(db, name)
    if info is not None:
        _check_existing(info, s)
        logger.info(
            "collection already provisioned",
            extra={"stage": "bootstrap.collection", "collection": name},
        )
        return "exists"

    options = timeseries_options(s)
    try:
        db.create_collection(name, **options)
    except CollectionInvalid as exc:
        # created by someone else between the lookup and the create
        info = collection_info(db, name)
        if info is None:
            raise SetupError(
                f"collection '{name}' reported as existing but could not be found: {exc}"
            ) from exc
        _check_existing(info, s)
        return "exists"
    except OperationFailure as exc:
        raise SetupError(f"could not create collection '{name}': {exc}") from exc

    logger.info(
        "collection created",
        extra={"stage": "bootstrap.collection", "collection": name, **options},
    )
    return "created"


def _normalize_key(key) -> list[tuple[str, int]]:
    items = key.items() if hasattr(key, "items") else key
    return [(field, int(direction)) for field, direction in items]


def _existing_indexes(coll) -> dict[str, list[tuple[str, int]]]:
    return {
        name: _normalize_key(info["key"])
        for name, info in coll.index_information().items()
        if name != "_id_"
    }


def ensure_indexes(db, s: Settings) -> list[str]:
    with connection_guard(f"lost connection while indexing '{s.collection.name}'"):
        return _ensure_indexes(db, s)


def _ensure_indexes(db, s: Settings) -> list[str]:
    coll = db[s.collection.name]
    existing = _existing_indexes(coll)
    created = []

    for keys in VITALS_INDEXES:
        name = index_name(keys)
        if name in existing:
            if existing[name] != list(keys):
                raise SchemaConflictError(
                    f"index '{name}' exists with keys {existing[name]}, expected {list(keys)}"
                )
            continue
        for other, other_keys in existing.items():
            if other_keys == list(keys):
                raise SchemaConflictError(
                    f"index on {list(keys)} already exists under name '{other}'"
                )

        try:
            coll.create_index(keys, name=name)
        except OperationFailure as exc:
            if exc.code in (INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT):
                raise SchemaConflictError(f"index '{name}' conflicts: {exc}") from exc
            raise SetupError(f"could not create index '{name}': {exc}") from exc
        created.append(name)

    logger.info(
        "indexes ensured",
        extra={
            "stage": "bootstrap.indexes",
            "collection": s.collection.name,
            "indexes_created": created,
        },
    )
    return created


def describe_collection(db, s: Settings) -> dict:
    """Read-only report of the collection's layout against the declared one."""
    with connection_guard(f"lost connection while inspecting '{s.collection.name}'"):
        return _describe_collection(db, s)


def _describe_collection(db, s: Settings) -> dict:
    name = s.collection.name
    info = collection_info(db, name)
    report = {
        "db": s.mongo.db,
        "collection": name,
        "exists": info is not None,
        "options": (info or {}).get("options") or {},
        "indexes": {},
        "documents": 0,
        "drift": [],
    }
    if info is None:
        report["drift"].append(f"collection '{name}' does not exist")
        return report

    report["drift"].extend(_option_drift(info, s))

    coll = db[name]
    existing = _existing_indexes(coll)
    report["indexes"] = {k: [list(p) for p in v] for k, v in existing.items()}
    for keys in VITALS_INDEXES:
        iname = index_name(keys)
        if iname not in existing:
            report["drift"].append(f"index '{iname}' is missing")
        elif existing[iname] != list(keys):
            report["drift"].append(f"index '{iname}' has keys {existing[iname]}")

    report["documents"] = coll.count_documents({})
    return report
