#!/usr/bin/env python3
"""Seed the default work centers and optionally a demo order with a planned time slot.

This script is runnable directly (python scripts/seed_workcenters.py) and also import-safe.
If you see `ModuleNotFoundError: No module named 'decoplan'`, run from the project root or set PYTHONPATH=. before running.
"""
import sys
from pathlib import Path

# Ensure project root is on sys.path when running the script directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import argparse
from datetime import date, timedelta

from decoplan.db import SessionLocal, Base, engine
from decoplan import crud, schemas
from decoplan.core import grid, scheduler, workflow
from decoplan.models import Department


DEFAULT_WORK_CENTERS = [
    ("Druck-Station 1", Department.DRUCK, 2),
    ("Druck-Station 2", Department.DRUCK, 2),
    ("Stickerei Maschine A", Department.STICKEREI, 1),
    ("Stickerei Maschine B", Department.STICKEREI, 2),
    ("Textilveredelung Bereich 1", Department.TEXTILVEREDELUNG, 3),
    ("Teamsport Produktion", Department.TEAMSPORT, 2),
]


def seed_work_centers(db):
    existing = {wc.name for wc in crud.list_work_centers(db)}
    created = []
    for name, department, concurrent in DEFAULT_WORK_CENTERS:
        if name in existing:
            continue
        created.append(crud.create_work_center(db, schemas.WorkCenterCreate(
            name=name, department=department, concurrent_capacity=concurrent,
        )))
    return created


def seed_demo_order(db, start="08:00", length_min=120):
    """A DRUCK order submitted to production with one slot tomorrow, 08:00-10:00 by default."""
    order = crud.create_order(db, schemas.OrderCreate(title="Demo Auftrag", customer="Muster GmbH", department=Department.DRUCK))
    crud.add_print_asset(db, order.id, schemas.PrintAssetCreate(label="Motiv vorne", url="https://example.invalid/motiv.pdf"))
    db.refresh(order)
    workflow.submit(db, order)
    wc = crud.list_work_centers(db, department=Department.DRUCK)[0]
    slot = scheduler.create_time_slot(db, wc.id, date.today() + timedelta(days=1),
                                      grid.hhmm_to_minutes(start), length_min, order_id=order.id)
    return order, slot


def main():
    parser = argparse.ArgumentParser(description='Seed default work centers and optionally a demo order.')
    parser.add_argument('--create-tables', action='store_true', help='Create tables from the ORM models instead of running alembic')
    parser.add_argument('--demo-order', action='store_true', help='Also create a submitted demo order with one planned slot')
    parser.add_argument('--demo-start', default='08:00', help='Start time (HH:MM) of the demo slot')
    args = parser.parse_args()

    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        created = seed_work_centers(db)
        if created:
            print(f"Seeded {len(created)} work centers: {', '.join(wc.name for wc in created)}")
        else:
            print("Work centers already seeded")

        if args.demo_order:
            order, slot = seed_demo_order(db, start=args.demo_start)
            print(f"Created demo order {order.display_order_number} with slot {slot.id} on {slot.date}")


if __name__ == '__main__':
    main()
