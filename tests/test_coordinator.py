import itertools
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from mrmaster.core.coordinator import create_coordinator
from mrmaster.core.errors import InvariantViolation, TaskNotFoundError
from mrmaster.models.job import Phase
from mrmaster.models.task import OfferStatus, TaskStatus, TaskType


def drain_offers(coordinator):
    offers = []
    while True:
        offer = coordinator.request_task()
        if not offer.ok:
            return offers, offer
        offers.append(offer)


def test_end_to_end_two_splits_two_reducers(make_coordinator):
    coordinator = make_coordinator(["a.txt", "b.txt"], 2)

    first, second = coordinator.request_task(), coordinator.request_task()
    assert {first.task_identity, second.task_identity} == {"a.txt", "b.txt"}
    assert first.task_type == second.task_type == TaskType.MAP
    assert {first.task_id, second.task_id} == {0, 1}
    assert first.map_task_count == 2 and first.reduce_task_count == 2

    waiting = coordinator.request_task()
    assert waiting.status == OfferStatus.WAIT
    assert not waiting.ok

    coordinator.report_task_complete(TaskType.MAP, "a.txt")
    assert coordinator.request_task().status == OfferStatus.WAIT
    coordinator.report_task_complete(TaskType.MAP, "b.txt")
    assert coordinator.phase == Phase.REDUCING

    reduce_offers = [coordinator.request_task(), coordinator.request_task()]
    assert {offer.task_id for offer in reduce_offers} == {0, 1}
    assert {offer.task_identity for offer in reduce_offers} == {"mr-out-0", "mr-out-1"}
    assert all(offer.task_type == TaskType.REDUCE for offer in reduce_offers)

    for offer in reduce_offers:
        assert not coordinator.is_job_done()
        coordinator.report_task_complete(TaskType.REDUCE, offer.task_identity)

    assert coordinator.is_job_done()
    for _ in range(3):
        offer = coordinator.request_task()
        assert offer.status == OfferStatus.JOB_COMPLETE
        assert not offer.ok


def test_concurrent_requests_never_share_a_task(make_coordinator):
    splits = [f"split-{i}.txt" for i in range(20)]
    coordinator = make_coordinator(splits, 3)
    start = threading.Barrier(16)

    def worker():
        start.wait()
        return [coordinator.request_task() for _ in range(5)]

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = [offer for batch in pool.map(lambda _: worker(), range(16)) for offer in batch]

    handed_out = [offer.task_identity for offer in results if offer.ok]
    assert sorted(handed_out) == sorted(splits)
    assert all(offer.status == OfferStatus.WAIT for offer in results if not offer.ok)


def test_phase_sequence_never_regresses(make_coordinator, scheduler):
    coordinator = make_coordinator(["a.txt", "b.txt"], 1)
    order = [Phase.MAPPING, Phase.REDUCING, Phase.ALL_DONE]
    seen = [coordinator.phase]

    coordinator.request_task()
    scheduler.fire_all()  # first worker stalls
    seen.append(coordinator.phase)

    while not coordinator.is_job_done():
        offer = coordinator.request_task()
        if offer.ok:
            coordinator.report_task_complete(offer.task_type, offer.task_identity)
        seen.append(coordinator.phase)

    indexes = [order.index(phase) for phase in seen]
    assert indexes == sorted(indexes)
    assert set(seen) == set(order)


def test_completion_report_is_idempotent(make_coordinator):
    coordinator = make_coordinator(["a.txt", "b.txt"], 1)
    coordinator.request_task()

    assert coordinator.report_task_complete(TaskType.MAP, "a.txt") is True
    assert coordinator.report_task_complete(TaskType.MAP, "a.txt") is True
    assert coordinator.status().map.completed == 1
    assert coordinator.metrics.get_count("completed", "map") == 1


def test_repeated_report_of_last_map_task_after_phase_advance(make_coordinator):
    coordinator = make_coordinator(["a.txt"], 1)
    coordinator.request_task()
    coordinator.report_task_complete(TaskType.MAP, "a.txt")
    assert coordinator.phase == Phase.REDUCING

    assert coordinator.report_task_complete(TaskType.MAP, "a.txt") is True
    assert coordinator.phase == Phase.REDUCING


def test_timed_out_task_is_offered_again(make_coordinator, scheduler):
    coordinator = make_coordinator(["a.txt"], 1)
    first = coordinator.request_task()
    assert coordinator.request_task().status == OfferStatus.WAIT

    scheduler.fire_all()

    second = coordinator.request_task()
    assert second.ok
    assert second.task_identity == first.task_identity == "a.txt"
    assert coordinator.status().reverted == {"map": 1, "reduce": 0}
    assert coordinator.metrics.get_count("reverted", "map") == 1


def test_report_before_timeout_beats_the_watchdog(make_coordinator, scheduler):
    coordinator = make_coordinator(["a.txt"], 1)
    coordinator.request_task()
    coordinator.report_task_complete(TaskType.MAP, "a.txt")

    assert scheduler.fire_all() == [False]
    assert coordinator.status().map.completed == 1
    assert coordinator.phase == Phase.REDUCING


def test_late_report_after_reassignment_is_harmless(make_coordinator, scheduler):
    coordinator = make_coordinator(["a.txt"], 1)
    worker_a = coordinator.request_task()
    scheduler.fire_all()

    worker_b = coordinator.request_task()
    assert worker_b.task_identity == worker_a.task_identity
    coordinator.report_task_complete(TaskType.MAP, worker_b.task_identity)

    assert coordinator.report_task_complete(TaskType.MAP, worker_a.task_identity) is True
    assert scheduler.fire_all() == [False]
    assert coordinator.status().map.completed == 1
    assert coordinator.phase == Phase.REDUCING


@pytest.mark.parametrize("map_order", list(itertools.permutations(["s0", "s1", "s2"])))
def test_job_done_only_after_every_report(make_coordinator, map_order):
    coordinator = make_coordinator(["s0", "s1", "s2"], 2)
    drain_offers(coordinator)

    for identity in map_order:
        assert not coordinator.is_job_done()
        with pytest.raises(TaskNotFoundError):
            coordinator.report_task_complete(TaskType.REDUCE, "mr-out-0")
        coordinator.report_task_complete(TaskType.MAP, identity)

    assert coordinator.phase == Phase.REDUCING
    drain_offers(coordinator)
    coordinator.report_task_complete(TaskType.REDUCE, "mr-out-1")
    assert not coordinator.is_job_done()
    coordinator.report_task_complete(TaskType.REDUCE, "mr-out-0")
    assert coordinator.is_job_done()


def test_scan_offers_every_task_despite_repeated_timeouts(make_coordinator, scheduler):
    splits = ["a.txt", "b.txt", "c.txt"]
    coordinator = make_coordinator(splits, 1)
    offered = []

    for _ in range(len(splits)):
        offered.append(coordinator.request_task().task_identity)
        scheduler.fire_all()  # the worker stalls every time

    assert sorted(offered) == splits


def test_unknown_task_is_not_found(make_coordinator):
    coordinator = make_coordinator(["a.txt"], 1)

    with pytest.raises(TaskNotFoundError):
        coordinator.report_task_complete(TaskType.MAP, "z.txt")
    with pytest.raises(TaskNotFoundError):
        coordinator.report_task_complete("shuffle", "a.txt")
    assert coordinator.status().map.completed == 0


def test_reduce_report_after_job_done_for_unknown_partition(make_coordinator):
    coordinator = make_coordinator([], 1)
    coordinator.request_task()
    coordinator.report_task_complete("reduce", "mr-out-0")
    assert coordinator.is_job_done()

    assert coordinator.report_task_complete("reduce", "mr-out-0") is True
    with pytest.raises(TaskNotFoundError):
        coordinator.report_task_complete("reduce", "mr-out-7")


def test_empty_job_is_done_at_construction(make_coordinator):
    coordinator = make_coordinator([], 0)

    assert coordinator.is_job_done()
    assert coordinator.request_task().status == OfferStatus.JOB_COMPLETE


def test_no_reduce_tasks_finishes_after_map_phase(make_coordinator):
    coordinator = make_coordinator(["a.txt"], 0)
    coordinator.request_task()
    coordinator.report_task_complete(TaskType.MAP, "a.txt")

    assert coordinator.is_job_done()


def test_invalid_construction(make_coordinator):
    with pytest.raises(ValueError):
        make_coordinator(["a.txt"], -1)
    with pytest.raises(ValueError):
        make_coordinator(["a.txt", "a.txt"], 1)


def test_status_snapshot(make_coordinator):
    coordinator = make_coordinator(["a.txt", "b.txt"], 3)
    coordinator.request_task()

    status = coordinator.status()

    assert status.phase == Phase.MAPPING
    assert not status.done
    assert status.map.total == 2
    assert status.map.in_progress == 1
    assert status.map.unstarted == 1
    assert status.reduce.total == 3
    assert status.reduce.unstarted == 3
    assert coordinator.task_timeout == 5.0


def test_metrics_follow_assignments_and_phase(make_coordinator):
    coordinator = make_coordinator(["a.txt"], 1)
    coordinator.request_task()
    coordinator.report_task_complete(TaskType.MAP, "a.txt")

    assert coordinator.metrics.get_count("assigned", "map") == 1
    assert coordinator.metrics.get_count("completed", "map") == 1
    exposition = coordinator.metrics.render().decode()
    assert 'coordinator_phase{coordinator_phase="reducing"} 1.0' in exposition


def test_watchdog_for_missing_task_is_fatal(make_coordinator):
    coordinator = make_coordinator(["a.txt"], 1)

    with pytest.raises(InvariantViolation):
        coordinator._watchdog.expire(TaskType.MAP, "ghost.txt", 1)
    assert isinstance(coordinator.fault, InvariantViolation)


def test_real_timer_reassigns_stalled_task():
    coordinator = create_coordinator(["a.txt"], 1, task_timeout=0.05)
    try:
        assert coordinator.request_task().task_identity == "a.txt"

        deadline = time.monotonic() + 5
        offer = coordinator.request_task()
        while not offer.ok and time.monotonic() < deadline:
            time.sleep(0.01)
            offer = coordinator.request_task()

        assert offer.ok
        assert offer.task_identity == "a.txt"
    finally:
        coordinator.close()


def test_job_done_polls_do_not_block_assignment(make_coordinator):
    coordinator = make_coordinator([f"s{i}" for i in range(50)], 1)
    stop = threading.Event()

    def poll():
        while not stop.is_set():
            coordinator.is_job_done()

    pollers = [threading.Thread(target=poll) for _ in range(4)]
    for thread in pollers:
        thread.start()
    try:
        offers, last = drain_offers(coordinator)
    finally:
        stop.set()
        for thread in pollers:
            thread.join()

    assert len(offers) == 50
    assert last.status == OfferStatus.WAIT


def test_revert_count_is_visible_with_the_reverted_task(make_coordinator, scheduler):
    coordinator = make_coordinator(["a.txt"], 1)
    coordinator.request_task()
    snapshots = []
    record_revert = coordinator._watchdog._on_revert

    def observe(task_type, record):
        record_revert(task_type, record)
        # Hook runs inside the watchdog's critical section
        snapshots.append((record.status, coordinator._reverted[task_type]))

    coordinator._watchdog._on_revert = observe
    scheduler.fire_all()

    assert snapshots == [(TaskStatus.UNSTARTED, 1)]
    assert coordinator.status().reverted == {"map": 1, "reduce": 0}


def test_faulted_coordinator_refuses_further_work(make_coordinator):
    coordinator = make_coordinator(["a.txt"], 1)
    with pytest.raises(InvariantViolation):
        coordinator._watchdog.expire(TaskType.MAP, "ghost.txt", 1)

    with pytest.raises(InvariantViolation):
        coordinator.request_task()
    with pytest.raises(InvariantViolation):
        coordinator.report_task_complete(TaskType.MAP, "a.txt")
    assert coordinator.status().map.completed == 0
