# scripts/db/seed_db.py
import csv
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from app.db.models import DbBaseModel
from app.db.schemas import (
    DestinationRecord,
    DriverRecord,
    PatientRecord,
    TreatmentTypeRecord,
    VehicleRecord,
)
from app.domain.commands import EntityKind, Upsert
from app.persistence import EntityRepository
from common.logger import get_app_logger

logger = get_app_logger(__name__)

SCHEMA_MAP: dict[str, tuple[EntityKind, type[BaseModel]]] = {
    "destinations": (EntityKind.DESTINATION, DestinationRecord),
    "treatment_types": (EntityKind.TREATMENT_TYPE, TreatmentTypeRecord),
    "vehicles": (EntityKind.VEHICLE, VehicleRecord),
    "drivers": (EntityKind.DRIVER, DriverRecord),
    "patients": (EntityKind.PATIENT, PatientRecord),
}

# field -> table whose record with the same index it points at
REFERENCES: dict[str, tuple[str, str]] = {
    "treatment_types": ("default_destination_id", "destinations"),
}


def write_records_to_csv(filename: str, records: list[BaseModel]):
    """Write Pydantic records to CSV."""
    if not records:
        return

    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = list(records[0].model_dump(mode="json").keys())

    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for record in records:
            writer.writerow(record.model_dump(mode="json"))


def build_records(
    table: str,
    template: dict[str, Any],
    records: int,
    start_index: int = 0,
    seeded: dict[str, list[BaseModel]] | None = None,
) -> list[BaseModel]:
    """Generate validated records from a template."""
    _, record_cls = SCHEMA_MAP[table]
    reference = REFERENCES.get(table)
    targets = (seeded or {}).get(reference[1], []) if reference else []

    result = []
    for offset in range(records):
        i = start_index + offset
        data: dict[str, Any] = {
            key: value.format(i=i) if isinstance(value, str) else value
            for key, value in template.items()
        }
        if reference and targets:
            data[reference[0]] = targets[offset % len(targets)].id  # type: ignore[attr-defined]
        result.append(record_cls.model_validate({"id": DbBaseModel.generate_uuid(), **data}))
    return result


async def seed_db(
    repository: EntityRepository,
    data_template: dict[str, dict],
    records: int,
    start_index: int = 0,
    export_csv: bool = False,
    csv_dir: str = "data/seed",
) -> dict[str, list[BaseModel]]:
    """
    Seed the repository with generated registry records.

    Each table is written as one persistence job so a failure leaves
    earlier tables in place.

    Returns:
        Dict mapping table names to the generated records
    """
    all_records_by_table: dict[str, list[BaseModel]] = {}

    for table, template in data_template.items():
        kind, _ = SCHEMA_MAP[table]
        generated = build_records(table, template, records, start_index, all_records_by_table)
        all_records_by_table[table] = generated

        if export_csv:
            write_records_to_csv(str(Path(csv_dir) / f"{table}.csv"), generated)

        await repository.apply([Upsert(kind, record) for record in generated])
        logger.info("Seeded table", table=table, records=len(generated))

    return all_records_by_table


__all__ = ["seed_db", "build_records", "write_records_to_csv", "SCHEMA_MAP"]
