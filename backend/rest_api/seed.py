"""
Seed data for development and demos.
Creates one tenant, one bakery site and the flour-to-loaf lineage used in
recall exercises:

    RM-FLOUR-001 (100 kg) --100 kg--> DOUGH-550 <--60 kg-- RM-WATER-014
    DOUGH-550 --80 kg--> LOAF-9001
    DOUGH-550 --78 kg--> LOAF-9002

plus the flour supplier and the cafes the loaves were dispatched to.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import Batch, BatchDispatch, BatchRelation, Site, Tenant
from shared.config.constants import BatchKind, BatchStatus
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit

logger = get_logger(__name__)


# BigInteger keys are not auto-generated on SQLite; seed rows use fixed IDs
DEMO_TENANT_ID = 1
DEMO_SITE_ID = 1

DEMO_BATCHES = [
    # id, code, kind, quantity, unit, status, description
    (1, "RM-FLOUR-001", BatchKind.RAW_MATERIAL_LOT, "100", "kg", BatchStatus.CONSUMED, "Strong white flour"),
    (2, "RM-WATER-014", BatchKind.RAW_MATERIAL_LOT, "60", "kg", BatchStatus.CONSUMED, "Filtered water"),
    (3, "DOUGH-550", BatchKind.PRODUCTION_BATCH, "160", "kg", BatchStatus.CONSUMED, "Bloomer dough"),
    (4, "LOAF-9001", BatchKind.FINISHED_GOOD, "80", "kg", BatchStatus.ACTIVE, "Bloomer loaves, morning bake"),
    (5, "LOAF-9002", BatchKind.FINISHED_GOOD, "78", "kg", BatchStatus.ACTIVE, "Bloomer loaves, second bake"),
]

DEMO_RELATIONS = [
    # id, input code, output code, quantity, unit
    (1, "RM-FLOUR-001", "DOUGH-550", "100", "kg"),
    (2, "RM-WATER-014", "DOUGH-550", "60", "kg"),
    (3, "DOUGH-550", "LOAF-9001", "80", "kg"),
    (4, "DOUGH-550", "LOAF-9002", "78", "kg"),
]

# code: (supplier name, supplier batch code)
DEMO_SUPPLIERS = {
    "RM-FLOUR-001": ("Northfield Mills", "NFM-24-118"),
    "RM-WATER-014": ("Central Bakery mains", None),
}

DEMO_ALLERGENS = {
    "RM-FLOUR-001": ["gluten"],
    "DOUGH-550": ["gluten"],
    "LOAF-9001": ["gluten", "sesame"],
    "LOAF-9002": ["gluten"],
}

DEMO_DISPATCHES = [
    # id, batch code, customer, quantity, unit, delivery note
    (1, "LOAF-9001", "Corner Cafe", "40", "kg", "DN-1001"),
    (2, "LOAF-9001", "Harbour Deli", "40", "kg", "DN-1002"),
    (3, "LOAF-9002", "Corner Cafe", "78", "kg", "DN-1003"),
]


def seed(db: Session) -> bool:
    """
    Insert the demo tenant and bakery lineage.
    Idempotent: returns False without writing if the tenant already exists.
    """
    if db.scalar(select(Tenant.id).where(Tenant.id == DEMO_TENANT_ID)):
        logger.info("Demo data already seeded, skipping")
        return False

    logger.info("Seeding demo traceability data")
    now = datetime.now(timezone.utc)

    db.add(Tenant(id=DEMO_TENANT_ID, name="Demo Bakery Group", slug="demo-bakery"))
    db.add(Site(id=DEMO_SITE_ID, tenant_id=DEMO_TENANT_ID, name="Central Bakery", address="1 Mill Lane"))
    db.flush()

    ids_by_code: dict[str, int] = {}
    for batch_id, code, kind, quantity, unit, status, description in DEMO_BATCHES:
        supplier_name, supplier_batch_code = DEMO_SUPPLIERS.get(code, (None, None))
        allergens = DEMO_ALLERGENS.get(code)
        db.add(
            Batch(
                id=batch_id,
                tenant_id=DEMO_TENANT_ID,
                site_id=DEMO_SITE_ID,
                code=code,
                kind=kind,
                quantity_produced=Decimal(quantity),
                unit=unit,
                status=status,
                description=description,
                produced_at=now,
                supplier_name=supplier_name,
                supplier_batch_code=supplier_batch_code,
                allergens=json.dumps(allergens) if allergens else None,
            )
        )
        ids_by_code[code] = batch_id
    db.flush()

    for relation_id, input_code, output_code, quantity, unit in DEMO_RELATIONS:
        db.add(
            BatchRelation(
                id=relation_id,
                tenant_id=DEMO_TENANT_ID,
                input_batch_id=ids_by_code[input_code],
                output_batch_id=ids_by_code[output_code],
                quantity_consumed=Decimal(quantity),
                unit=unit,
                recorded_at=now,
            )
        )

    for dispatch_id, code, customer, quantity, unit, note in DEMO_DISPATCHES:
        db.add(
            BatchDispatch(
                id=dispatch_id,
                tenant_id=DEMO_TENANT_ID,
                batch_id=ids_by_code[code],
                customer_name=customer,
                dispatched_at=now,
                quantity=Decimal(quantity),
                unit=unit,
                delivery_note_reference=note,
            )
        )

    safe_commit(db)
    logger.info(
        "Demo data seeded",
        batches=len(DEMO_BATCHES),
        relations=len(DEMO_RELATIONS),
        dispatches=len(DEMO_DISPATCHES),
    )
    return True
