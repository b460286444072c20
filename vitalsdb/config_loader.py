from __future__ import annotations
from pathlib import Path
from typing import Literal
import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field
import yaml

from .schemas.vitals import VitalReading, demo_readings

logger = logging.getLogger(__name__)

# 30 days
DEFAULT_RETENTION_SECONDS = 2_592_000


class MongoConfig(BaseModel):
    uri: str = Field(default="mongodb://localhost:27017")
    db: str = Field(default="vitals_db")
    server_selection_timeout_ms: int = Field(default=8000, gt=0)


class CollectionConfig(BaseModel):
    name: str = Field(default="vitals", min_length=1)
    granularity: Literal["seconds", "minutes", "hours"] = Field(default="seconds")
    expire_after_seconds: int = Field(default=DEFAULT_RETENTION_SECONDS, gt=0)


class SeedConfig(BaseModel):
    enabled: bool = True
    skip_existing: bool = False
    records: list[VitalReading] = Field(default_factory=demo_readings)


class Settings(BaseModel):
    mongo: MongoConfig = Field(default_factory=MongoConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    seed: SeedConfig = Field(default_factory=SeedConfig)


def _load_yaml(path: str | os.PathLike) -> dict:
    p = Path(path)
    if not p.exists():
        logger.error(f"Config file {p} does not exist")
        return {}
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(config_path: str = "config.yaml") -> Settings:
    load_dotenv(override=False)

    data = _load_yaml(config_path)
    mongo = dict(data.get("mongo") or {})

    # Allow env overrides for connection details
    uri = os.getenv("MONGODB_URI")
    if uri:
        mongo["uri"] = uri
    db = os.getenv("MONGODB_DB")
    if db:
        mongo["db"] = db

    merged = {**data, "mongo": mongo}
    return Settings(**merged)
