from __future__ import annotations
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# Time-series layout of the vitals collection
TIME_FIELD = "timestamp"
META_FIELD = "patientId"


class VitalReading(BaseModel):
    """One vital-signs reading, keyed by patient and time.

    Field aliases are the stored (camelCase) document keys, so seed records in
    YAML and documents in MongoDB use the same names.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    patient_id: str = Field(alias="patientId", min_length=1)
    heart_rate: int = Field(alias="heartRate")
    # kept as "systolic/diastolic" text; not decomposed
    blood_pressure: str = Field(alias="bloodPressure", pattern=r"^\d{2,3}/\d{2,3}$")
    oxygen_level: int = Field(alias="oxygenLevel", ge=0, le=100)
    temperature: float
    timestamp: datetime | None = None

    device_id: str | None = Field(default=None, alias="deviceId")
    is_anomaly: bool | None = Field(default=None, alias="isAnomaly")
    ingested_at: datetime | None = Field(default=None, alias="ingestedAt")
    status: str | None = None

    def to_document(self, now: datetime) -> dict:
        doc = self.model_dump(by_alias=True, exclude_none=True)
        doc[TIME_FIELD] = self.timestamp or now
        return doc


DEMO_READINGS: list[dict] = [
    {
        "patientId": "P001",
        "heartRate": 75,
        "bloodPressure": "120/80",
        "oxygenLevel": 98,
        "temperature": 36.8,
    },
    {
        "patientId": "P002",
        "heartRate": 82,
        "bloodPressure": "118/75",
        "oxygenLevel": 97,
        "temperature": 37.1,
    },
]


def demo_readings() -> list[VitalReading]:
    return [VitalReading(**r) for r in DEMO_READINGS]
