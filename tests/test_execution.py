import threading
from datetime import date, datetime, timedelta

import pytest

from decoplan.db import SessionLocal
from decoplan.core import execution, scheduler
from decoplan.core.exceptions import InvalidTransitionError
from decoplan.models import QCState, TimeSlotStatus, WorkflowState

DAY = date(2030, 1, 7)
T0 = datetime(2030, 1, 7, 9, 0, 0)

ACTIONS = {
    "start": (execution.start_slot, TimeSlotStatus.RUNNING),
    "pause": (execution.pause_slot, TimeSlotStatus.PAUSED),
    "stop": (execution.stop_slot, TimeSlotStatus.DONE),
}

LEGAL = {
    (TimeSlotStatus.PLANNED, TimeSlotStatus.RUNNING),
    (TimeSlotStatus.RUNNING, TimeSlotStatus.PAUSED),
    (TimeSlotStatus.PAUSED, TimeSlotStatus.RUNNING),
    (TimeSlotStatus.RUNNING, TimeSlotStatus.DONE),
    (TimeSlotStatus.PAUSED, TimeSlotStatus.DONE),
}


@pytest.fixture
def order_slot(db, make_work_center, make_order):
    wc = make_work_center()
    order = make_order(workflow=WorkflowState.FUER_PROD)
    slot = scheduler.create_time_slot(db, wc.id, DAY, 540, 60, order_id=order.id)
    return order, slot


@pytest.mark.parametrize("source", list(TimeSlotStatus))
@pytest.mark.parametrize("action", sorted(ACTIONS))
def test_only_the_five_legal_edges_succeed(db, order_slot, source, action):
    _, slot = order_slot
    slot.status = source
    slot.started_at = T0
    db.commit()
    func, target = ACTIONS[action]

    if (source, target) in LEGAL:
        result = func(db, slot.id, now=T0 + timedelta(minutes=5))
        assert result.status == target
    else:
        with pytest.raises(InvalidTransitionError) as exc:
            func(db, slot.id, now=T0 + timedelta(minutes=5))
        assert exc.value.action == action
        assert exc.value.current_status == source.value
        db.refresh(slot)
        assert slot.status == source


def test_legal_edge_table():
    assert execution.LEGAL_EDGES == LEGAL
    assert execution.is_legal_edge("PAUSED", "RUNNING")
    assert not execution.is_legal_edge(TimeSlotStatus.DONE, TimeSlotStatus.RUNNING)


def test_elapsed_time_accumulates_across_pauses(db, order_slot):
    _, slot = order_slot
    execution.start_slot(db, slot.id, now=T0)
    execution.pause_slot(db, slot.id, now=T0 + timedelta(minutes=10))
    assert slot.elapsed_seconds == 600

    resumed = execution.start_slot(db, slot.id, now=T0 + timedelta(minutes=20))
    assert resumed.started_at == T0 + timedelta(minutes=20)
    assert resumed.elapsed_seconds == 600

    done = execution.stop_slot(db, slot.id, now=T0 + timedelta(minutes=25, seconds=30))
    assert done.status == TimeSlotStatus.DONE
    assert done.elapsed_seconds == 930
    assert done.actual_duration_min == 15
    assert done.stopped_at == T0 + timedelta(minutes=25, seconds=30)


def test_stop_from_paused_does_not_count_the_pause(db, order_slot):
    _, slot = order_slot
    execution.start_slot(db, slot.id, now=T0)
    execution.pause_slot(db, slot.id, now=T0 + timedelta(minutes=3))
    done = execution.stop_slot(db, slot.id, now=T0 + timedelta(hours=2))
    assert done.actual_duration_min == 3


def test_qc_only_after_done(db, order_slot):
    order, slot = order_slot
    execution.start_slot(db, slot.id, now=T0)
    with pytest.raises(InvalidTransitionError):
        execution.set_qc(db, slot.id, "OK")

    execution.stop_slot(db, slot.id, now=T0 + timedelta(minutes=45))
    checked = execution.set_qc(db, slot.id, "OK", note="sauber")
    assert checked.qc == QCState.IO
    assert checked.qc_note == "sauber"
    db.refresh(order)
    assert order.qc == QCState.IO


def test_qc_failure_marks_order_not_ok(db, order_slot):
    order, slot = order_slot
    execution.start_slot(db, slot.id, now=T0)
    execution.stop_slot(db, slot.id, now=T0 + timedelta(minutes=45))
    failed = execution.report_qc_failure(db, slot.id, "Druck verschoben")
    assert failed.qc == QCState.NIO
    db.refresh(order)
    assert order.qc == QCState.NIO


def test_blocker_never_starts(db, make_work_center):
    wc = make_work_center()
    blocker = scheduler.create_time_slot(db, wc.id, DAY, 420, 60, note="Reinigung")
    with pytest.raises(InvalidTransitionError):
        execution.start_slot(db, blocker.id, now=T0)


def test_order_follows_slot_execution(db, make_work_center, make_order):
    wc = make_work_center()
    order = make_order(workflow=WorkflowState.FUER_PROD)
    first = scheduler.create_time_slot(db, wc.id, DAY, 540, 60, order_id=order.id)
    second = scheduler.create_time_slot(db, wc.id, DAY, 600, 60, order_id=order.id)

    execution.start_slot(db, first.id, now=T0)
    db.refresh(order)
    assert order.workflow == WorkflowState.IN_PROD

    execution.stop_slot(db, first.id, now=T0 + timedelta(minutes=50))
    db.refresh(order)
    assert order.workflow == WorkflowState.IN_PROD

    execution.start_slot(db, second.id, now=T0 + timedelta(hours=1))
    execution.stop_slot(db, second.id, now=T0 + timedelta(hours=2))
    db.refresh(order)
    assert order.workflow == WorkflowState.FERTIG


def test_concurrent_starts_only_one_wins(db, order_slot):
    _, slot = order_slot
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def worker():
        session = SessionLocal()
        try:
            barrier.wait()
            execution.start_slot(session, slot.id)
            result = "ok"
        except InvalidTransitionError:
            result = "rejected"
        finally:
            session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["ok", "rejected"]
    db.refresh(slot)
    assert slot.status == TimeSlotStatus.RUNNING
