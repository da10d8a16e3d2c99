import threading
from datetime import date

import pytest

from decoplan import models
from decoplan.db import SessionLocal
from decoplan.core import scheduler
from decoplan.core.batch import CREATE, DELETE, UPDATE, SlotMutation, apply_batch
from decoplan.core.exceptions import BatchOperationError, ErrorType
from decoplan.models import WorkflowState

DAY = date(2030, 1, 7)


def test_batch_creates_all_members(db, make_work_center, make_order):
    wc = make_work_center(concurrent_capacity=1)
    order = make_order()
    result = apply_batch(db, [
        SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=540, length_min=60, order_id=order.id),
        SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=600, length_min=60, order_id=order.id),
        SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=420, length_min=30, note="Rüsten"),
    ])
    assert len(result.created) == 3
    assert all(s.id is not None for s in result.created)
    assert result.created[2].blocked is True
    assert db.query(models.TimeSlot).count() == 3


def test_conflict_between_members_rolls_back_everything(db, make_work_center, make_order):
    wc = make_work_center(concurrent_capacity=1)
    order = make_order()
    with pytest.raises(BatchOperationError) as exc:
        apply_batch(db, [
            SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=540, length_min=60, order_id=order.id),
            SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=570, length_min=60, order_id=order.id),
        ])
    assert exc.value.error_type == ErrorType.CONFLICT
    assert exc.value.status_code == 409
    assert exc.value.details["rule"] == "conflict"
    assert exc.value.index in (0, 1)
    assert db.query(models.TimeSlot).count() == 0


def test_swapping_two_slots_is_checked_against_the_final_state(db, make_work_center, make_order):
    wc = make_work_center(concurrent_capacity=1)
    order = make_order()
    a = scheduler.create_time_slot(db, wc.id, DAY, 540, 60, order_id=order.id)
    b = scheduler.create_time_slot(db, wc.id, DAY, 600, 60, order_id=order.id)

    # moving either slot alone would collide with the other one
    result = apply_batch(db, [
        SlotMutation(UPDATE, slot_id=a.id, start_min=600),
        SlotMutation(UPDATE, slot_id=b.id, start_min=540),
    ])
    assert len(result.updated) == 2
    db.refresh(a)
    db.refresh(b)
    assert (a.start_min, b.start_min) == (600, 540)


def test_delete_frees_capacity_for_later_member(db, make_work_center, make_order):
    wc = make_work_center(concurrent_capacity=1)
    order = make_order()
    a = scheduler.create_time_slot(db, wc.id, DAY, 540, 60, order_id=order.id)
    result = apply_batch(db, [
        SlotMutation(DELETE, slot_id=a.id),
        SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=540, length_min=60, order_id=order.id),
    ])
    assert result.deleted == [a.id]
    assert len(result.created) == 1
    assert db.query(models.TimeSlot).count() == 1


def test_member_referencing_slot_deleted_earlier_fails(db, make_work_center, make_order):
    wc = make_work_center()
    order = make_order()
    a = scheduler.create_time_slot(db, wc.id, DAY, 540, 60, order_id=order.id)
    with pytest.raises(BatchOperationError) as exc:
        apply_batch(db, [
            SlotMutation(DELETE, slot_id=a.id),
            SlotMutation(UPDATE, slot_id=a.id, start_min=600),
        ])
    assert exc.value.index == 1
    assert exc.value.operation == UPDATE
    assert exc.value.status_code == 404
    assert db.query(models.TimeSlot).count() == 1


def test_workflow_failure_reports_member_and_keeps_earlier_members_out(db, make_work_center, make_order):
    wc = make_work_center()
    ready = make_order()
    draft = make_order(workflow=WorkflowState.NEU)
    with pytest.raises(BatchOperationError) as exc:
        apply_batch(db, [
            SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=540, length_min=60, order_id=ready.id),
            SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=660, length_min=60, order_id=draft.id),
        ])
    assert exc.value.index == 1
    assert exc.value.details["rule"] == "precondition_failed"
    assert exc.value.status_code == 412
    assert db.query(models.TimeSlot).count() == 0


def test_invalid_range_in_batch(db, make_work_center):
    wc = make_work_center()
    with pytest.raises(BatchOperationError) as exc:
        apply_batch(db, [SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=1065, length_min=30)])
    assert exc.value.status_code == 422
    assert exc.value.details["cause"]["type"] == "invalid_range"


def test_move_across_work_centers_in_batch(db, make_work_center, make_order):
    wc1 = make_work_center(concurrent_capacity=1)
    wc2 = make_work_center(name="Druck-Station 2", concurrent_capacity=1)
    order = make_order()
    a = scheduler.create_time_slot(db, wc1.id, DAY, 540, 60, order_id=order.id)
    b = scheduler.create_time_slot(db, wc2.id, DAY, 540, 60, order_id=order.id)
    with pytest.raises(BatchOperationError) as exc:
        apply_batch(db, [SlotMutation(UPDATE, slot_id=a.id, work_center_id=wc2.id)])
    assert exc.value.details["cause"]["details"]["overlapping_slot_ids"] == [b.id]

    apply_batch(db, [
        SlotMutation(UPDATE, slot_id=b.id, start_min=600),
        SlotMutation(UPDATE, slot_id=a.id, work_center_id=wc2.id),
    ])
    db.refresh(a)
    assert a.work_center_id == wc2.id


def test_later_note_wins_when_a_slot_is_updated_twice(db, make_work_center, make_order):
    wc = make_work_center(concurrent_capacity=1)
    order = make_order()
    a = scheduler.create_time_slot(db, wc.id, DAY, 540, 60, order_id=order.id, note="alt")

    result = apply_batch(db, [
        SlotMutation(UPDATE, slot_id=a.id, start_min=600, note="erste"),
        SlotMutation(UPDATE, slot_id=a.id, start_min=660, note="zweite"),
    ])
    assert len(result.updated) == 1
    db.refresh(a)
    assert (a.start_min, a.note) == (660, "zweite")

    # an update without a note keeps the earlier one from the same batch
    apply_batch(db, [
        SlotMutation(UPDATE, slot_id=a.id, note="dritte"),
        SlotMutation(UPDATE, slot_id=a.id, start_min=720),
    ])
    db.refresh(a)
    assert (a.start_min, a.note) == (720, "dritte")


def test_concurrent_batches_respect_capacity(db, make_work_center, make_order):
    wc = make_work_center(concurrent_capacity=1)
    order = make_order()
    barrier = threading.Barrier(4)
    outcomes = []
    lock = threading.Lock()

    def worker():
        session = SessionLocal()
        try:
            barrier.wait()
            apply_batch(session, [
                SlotMutation(CREATE, work_center_id=wc.id, date=DAY, start_min=540, length_min=60,
                             order_id=order.id),
            ])
            result = "ok"
        except BatchOperationError as exc:
            result = exc.details["rule"]
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict", "conflict", "conflict", "ok"]
    assert db.query(models.TimeSlot).count() == 1
