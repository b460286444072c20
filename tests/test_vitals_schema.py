from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from vitalsdb.schemas.vitals import VitalReading, demo_readings

NOW = datetime(2024, 7, 2, 12, 0, tzinfo=timezone.utc)


def test_demo_readings_match_literal_values():
    docs = [r.to_document(NOW) for r in demo_readings()]
    assert docs == [
        {
            "patientId": "P001",
            "heartRate": 75,
            "bloodPressure": "120/80",
            "oxygenLevel": 98,
            "temperature": 36.8,
            "timestamp": NOW,
        },
        {
            "patientId": "P002",
            "heartRate": 82,
            "bloodPressure": "118/75",
            "oxygenLevel": 97,
            "temperature": 37.1,
            "timestamp": NOW,
        },
    ]


def test_explicit_timestamp_and_enrichment_kept():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    r = VitalReading(
        patientId="P003",
        heartRate=120,
        bloodPressure="150/95",
        oxygenLevel=91,
        temperature=38.2,
        timestamp=ts,
        isAnomaly=True,
        status="ANOMALY",
    )
    doc = r.to_document(NOW)
    assert doc["timestamp"] == ts
    assert doc["isAnomaly"] is True
    assert doc["status"] == "ANOMALY"
    assert "deviceId" not in doc


def test_python_names_accepted():
    r = VitalReading(
        patient_id="P004",
        heart_rate=70,
        blood_pressure="120/80",
        oxygen_level=98,
        temperature=36.6,
    )
    assert r.to_document(NOW)["patientId"] == "P004"


@pytest.mark.parametrize(
    "field,value",
    [("patientId", ""), ("oxygenLevel", 140), ("bloodPressure", "120-80")],
)
def test_invalid_values_rejected(field, value):
    data = {
        "patientId": "P001",
        "heartRate": 75,
        "bloodPressure": "120/80",
        "oxygenLevel": 98,
        "temperature": 36.8,
    }
    data[field] = value
    with pytest.raises(ValidationError):
        VitalReading(**data)


def test_unknown_field_rejected():
    with pytest.raises(ValidationError):
        VitalReading(
            patientId="P001",
            heartRate=75,
            bloodPressure="120/80",
            oxygenLevel=98,
            temperature=36.8,
            pulse=1,
        )
