from __future__ import annotations
from datetime import datetime
from typing import Callable, Optional
import logging

from pymongo.errors import ConnectionFailure, PyMongoError

from ..config_loader import Settings
from ..errors import InsertError, MongoUnreachableError, SchemaConflictError
from ..mongo_client import (
    collection_info,
    connection_guard,
    ensure_indexes,
    ensure_timeseries_collection,
    get_db,
)
from ..schemas.vitals import META_FIELD
from ..utils.time import utc_now

logger = logging.getLogger(__name__)


def seed_vitals(db, settings: Settings, now: Optional[datetime] = None) -> int:
    """Insert the configured demonstration readings.

    Not idempotent unless ``seed.skip_existing`` is set: every call appends the
    records again. Returns the number of documents inserted.
    """
    s = settings
    name = s.collection.name
    with connection_guard(f"lost connection while seeding '{name}'"):
        info = collection_info(db, name)
    if info is None:
        raise SchemaConflictError(f"collection '{name}' does not exist; run bootstrap first")

    now = now or utc_now()
    records = list(s.seed.records)
    coll = db[name]

    if s.seed.skip_existing:
        kept = []
        for r in records:
            with connection_guard(f"lost connection while seeding '{name}'"):
                seen = coll.find_one({META_FIELD: r.patient_id})
            if seen is not None:
                logger.info(
                    "seed record skipped, patient already has readings",
                    extra={"stage": "bootstrap.seed", "patient_id": r.patient_id},
                )
                continue
            kept.append(r)
        records = kept

    if not records:
        return 0

    docs = [r.to_document(now) for r in records]
    try:
        res = coll.insert_many(docs, ordered=True)
    except ConnectionFailure as exc:
        raise MongoUnreachableError(f"lost connection while seeding '{name}': {exc}") from exc
    except PyMongoError as exc:
        raise InsertError(f"seed documents rejected by '{name}': {exc}") from exc

    inserted = len(res.inserted_ids)
    logger.info(
        "seed documents inserted",
        extra={
            "stage": "bootstrap.seed",
            "collection": name,
            "count": inserted,
            "patients": [r.patient_id for r in records],
        },
    )
    return inserted


def bootstrap_mongo(
    settings: Settings,
    db=None,
    *,
    seed: Optional[bool] = None,
    now: Optional[datetime] = None,
    progress: Optional[Callable[[str], None]] = None,
) -> dict:
    """Provision the vitals time-series collection, its indexes and seed data.

    Steps run in order: collection, indexes, seed. Schema steps are safe to
    re-run; seeding appends on every run unless ``seed.skip_existing`` is set.
    ``progress`` receives the two operator confirmations.
    """
    s = settings
    report = progress or (lambda msg: None)
    if db is None:
        db = get_db(s)

    status = ensure_timeseries_collection(db, s)
    created = ensure_indexes(db, s)
    if status == "created":
        report("✅ Time-series collection created successfully")
    else:
        report("✅ Time-series collection already provisioned")

    do_seed = s.seed.enabled if seed is None else seed
    seeded = seed_vitals(db, s, now=now) if do_seed else 0
    if seeded:
        report(f"✅ Sample data inserted ({seeded} documents)")
    else:
        report("Sample data skipped")

    return {
        "ok": True,
        "db": s.mongo.db,
        "collection": s.collection.name,
        "collection_status": status,
        "indexes_created": created,
        "seeded": seeded,
    }
