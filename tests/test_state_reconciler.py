"""Tests for merging socket, poll and local inputs."""

from __future__ import annotations

import asyncio

import pytest

from notification_sync.application.notifications import POLL_COUNT, POLL_LIST, StateReconciler
from notification_sync.domain.errors import MutationFailure
from tests.support import FakeApi, RecordingSleep, make_notification, make_settings

pytestmark = pytest.mark.anyio


@pytest.fixture
def changes():
    return []


@pytest.fixture
def reconciler(api, settings, sleep, changes):
    reconciler = StateReconciler(api, settings=settings, sleep=sleep)
    reconciler.subscribe(changes.append)
    return reconciler


def test_socket_arrival_is_added_once(reconciler, changes):
    assert reconciler.apply_event(make_notification(1)) is True
    assert reconciler.apply_event(make_notification(1)) is False

    assert reconciler.snapshot.ids() == [1]
    assert reconciler.snapshot.unread_count == 1
    assert [item.id for item in changes[0].arrived] == [1]
    assert len(changes) == 1


def test_read_flag_never_reverts(reconciler):
    reconciler.apply_event(make_notification(5))
    reconciler.apply_event(make_notification(5, read=True))
    reconciler.apply_event(make_notification(5, read=False))

    ticket = reconciler.begin_poll(POLL_LIST)
    reconciler.apply_poll_items(ticket, [make_notification(5, read=False)])

    assert reconciler.snapshot.get(5).read is True
    assert reconciler.snapshot.unread_count == 0


def test_items_are_ordered_newest_first(reconciler):
    for notification_id in (2, 3, 1):
        reconciler.apply_event(make_notification(notification_id))

    assert reconciler.snapshot.ids() == [3, 2, 1]


def test_poll_discoveries_never_count_as_arrivals(reconciler, changes):
    ticket = reconciler.begin_poll(POLL_LIST)
    reconciler.apply_poll_items(ticket, [make_notification(1), make_notification(2)])

    assert reconciler.snapshot.ids() == [2, 1]
    assert all(change.arrived == () for change in changes)
    assert changes[-1].source == "poll"


def test_short_list_poll_recomputes_unread_count(reconciler):
    ticket = reconciler.begin_poll(POLL_LIST)
    reconciler.apply_poll_items(
        ticket, [make_notification(1), make_notification(2, read=True)]
    )

    assert reconciler.snapshot.unread_count == 1


def test_full_list_poll_leaves_count_to_the_count_query(reconciler, settings):
    events = [make_notification(i) for i in range(1, settings.poll_limit + 1)]
    list_ticket = reconciler.begin_poll(POLL_LIST)
    count_ticket = reconciler.begin_poll(POLL_COUNT)

    reconciler.apply_poll_items(list_ticket, events)
    assert reconciler.snapshot.unread_count == 0

    reconciler.apply_unread_count(count_ticket, 12)
    assert reconciler.snapshot.unread_count == 12


async def test_stale_poll_does_not_revert_local_read(reconciler, api):
    reconciler.apply_event(make_notification(42))
    list_ticket = reconciler.begin_poll(POLL_LIST)
    count_ticket = reconciler.begin_poll(POLL_COUNT)

    assert await reconciler.mark_read(42) is True

    reconciler.apply_poll_items(list_ticket, [make_notification(42, read=False)])
    reconciler.apply_unread_count(count_ticket, 1)

    assert reconciler.snapshot.get(42).read is True
    assert reconciler.snapshot.unread_count == 0
    assert api.mark_read_calls == [42]


async def test_stale_count_keeps_arrivals_seen_after_the_request(reconciler):
    ticket = reconciler.begin_poll(POLL_COUNT)
    reconciler.apply_event(make_notification(1))
    reconciler.apply_event(make_notification(2))

    reconciler.apply_unread_count(ticket, 0)

    assert reconciler.snapshot.unread_count == 2


async def test_mark_read_is_idempotent(reconciler, api):
    reconciler.apply_event(make_notification(1))
    reconciler.apply_event(make_notification(2))

    assert await reconciler.mark_read(1) is True
    assert await reconciler.mark_read(1) is True

    assert api.mark_read_calls == [1]
    assert reconciler.snapshot.unread_count == 1


async def test_mark_read_of_unknown_id_is_sent_without_touching_the_count(reconciler, api):
    reconciler.apply_event(make_notification(1))

    assert await reconciler.mark_read(99) is True

    assert api.mark_read_calls == [99]
    assert reconciler.snapshot.unread_count == 1

    # A later arrival of the same id is already read.
    reconciler.apply_event(make_notification(99))
    assert reconciler.snapshot.get(99).read is True
    assert reconciler.snapshot.unread_count == 1


async def test_mark_all_read_is_optimistic_while_pending(reconciler, api):
    for notification_id in range(1, 8):
        reconciler.apply_event(make_notification(notification_id))
    assert reconciler.snapshot.unread_count == 7

    api.gate = asyncio.Event()
    count_ticket = reconciler.begin_poll(POLL_COUNT)
    list_ticket = reconciler.begin_poll(POLL_LIST)
    task = asyncio.create_task(reconciler.mark_all_read())
    await asyncio.sleep(0)

    assert reconciler.snapshot.unread_count == 0
    assert all(item.read for item in reconciler.snapshot.items)
    assert api.mark_all_calls == 1

    reconciler.apply_unread_count(count_ticket, 7)
    reconciler.apply_poll_items(
        list_ticket, [make_notification(i) for i in range(3, 8)]
    )
    assert reconciler.snapshot.unread_count == 0
    assert all(item.read for item in reconciler.snapshot.items)

    api.gate.set()
    assert await task is True


async def test_failed_mutation_keeps_optimistic_state_and_requests_poll():
    api = FakeApi()
    api.fail_mutations = True
    sleep = RecordingSleep()
    failures = []
    poll_requests = []
    reconciler = StateReconciler(
        api,
        settings=make_settings(mutation_retries=3, mutation_retry_delay=0.25),
        sleep=sleep,
        on_mutation_failure=failures.append,
        on_poll_requested=lambda: poll_requests.append(True),
    )
    reconciler.apply_event(make_notification(8))

    assert await reconciler.mark_read(8) is False

    assert api.mark_read_calls == [8, 8, 8]
    assert sleep.delays == [0.25, 0.25]
    assert reconciler.snapshot.get(8).read is True
    assert reconciler.snapshot.unread_count == 0
    assert len(failures) == 1
    assert isinstance(failures[0], MutationFailure)
    assert failures[0].operation == "mark_read(8)"
    assert poll_requests == [True]

    # The failed id can be retried explicitly.
    api.fail_mutations = False
    assert await reconciler.mark_read(8) is True
    assert api.mark_read_calls == [8, 8, 8, 8]


def test_reset_ignores_responses_from_the_previous_session(reconciler, changes):
    reconciler.apply_event(make_notification(1))
    ticket = reconciler.begin_poll(POLL_LIST)
    count_ticket = reconciler.begin_poll(POLL_COUNT)

    reconciler.reset()

    assert reconciler.apply_poll_items(ticket, [make_notification(2)]) is False
    assert reconciler.apply_unread_count(count_ticket, 4) is False
    assert reconciler.snapshot.items == ()
    assert reconciler.snapshot.unread_count == 0
    assert changes[-1].source == "reset"


async def test_mutation_completing_after_reset_is_ignored(reconciler, api):
    reconciler.apply_event(make_notification(1))
    api.gate = asyncio.Event()
    task = asyncio.create_task(reconciler.mark_read(1))
    await asyncio.sleep(0)

    reconciler.reset()
    api.gate.set()

    assert await task is False
    assert reconciler.snapshot.items == ()


def test_items_beyond_the_limit_are_dropped(api, sleep):
    reconciler = StateReconciler(api, settings=make_settings(max_items=3), sleep=sleep)
    for notification_id in range(1, 6):
        reconciler.apply_event(make_notification(notification_id))

    assert reconciler.snapshot.ids() == [5, 4, 3]
    assert reconciler.snapshot.unread_count == 5


def test_snapshot_versions_increase(reconciler):
    reconciler.apply_event(make_notification(1))
    first = reconciler.snapshot.version
    reconciler.apply_event(make_notification(2))

    assert reconciler.snapshot.version > first


def test_badge_label_caps_at_ninety_nine(reconciler):
    ticket = reconciler.begin_poll(POLL_COUNT)
    reconciler.apply_unread_count(ticket, 150)

    assert reconciler.snapshot.badge_label == "99+"


async def test_stale_count_never_drops_below_the_unread_list(reconciler):
    for notification_id in (1, 2, 3):
        reconciler.apply_event(make_notification(notification_id))
    ticket = reconciler.begin_poll(POLL_COUNT)

    assert await reconciler.mark_read(1) is True
    # The server applied the read before answering.
    reconciler.apply_unread_count(ticket, 2)

    assert reconciler.snapshot.unread_count == 2
    assert sum(1 for item in reconciler.snapshot.items if not item.read) == 2


async def test_stale_list_does_not_mark_arrivals_after_mark_all_read(reconciler):
    reconciler.apply_event(make_notification(1))
    ticket = reconciler.begin_poll(POLL_LIST)

    assert await reconciler.mark_all_read() is True
    reconciler.apply_event(make_notification(50))
    reconciler.apply_poll_items(ticket, [make_notification(50), make_notification(1)])

    assert reconciler.snapshot.get(50).read is False
    assert reconciler.snapshot.get(1).read is True
    assert reconciler.snapshot.unread_count == 1


async def test_stale_list_still_marks_older_unseen_items_after_mark_all_read(reconciler):
    reconciler.apply_event(make_notification(2))
    ticket = reconciler.begin_poll(POLL_LIST)

    assert await reconciler.mark_all_read() is True
    reconciler.apply_poll_items(ticket, [make_notification(2), make_notification(1)])

    assert reconciler.snapshot.get(1).read is True
    assert reconciler.snapshot.unread_count == 0


def _socket(notification_id, read=False):
    return ("socket", notification_id, read)


def _poll(*entries):
    return ("poll", entries)


@pytest.mark.parametrize(
    ("steps", "expected_read", "expected_count"),
    [
        (
            [_socket(1), _poll((1, False), (2, True)), _socket(1, True), _poll((1, False), (2, False))],
            {1: True, 2: True},
            0,
        ),
        (
            [_poll((3, False)), _socket(3), _socket(3, True), _poll((3, False))],
            {3: True},
            0,
        ),
        (
            [_socket(4, True), _socket(4), _poll((4, False), (5, False))],
            {4: True, 5: False},
            1,
        ),
        (
            [_poll((6, True), (7, False)), _socket(7), _socket(8), _poll((8, True), (7, False), (6, False))],
            {6: True, 7: False, 8: True},
            1,
        ),
    ],
)
def test_interleaved_socket_and_poll_deliveries(
    reconciler, changes, steps, expected_read, expected_count
):
    for step in steps:
        if step[0] == "socket":
            _, notification_id, read = step
            reconciler.apply_event(make_notification(notification_id, read=read))
        else:
            ticket = reconciler.begin_poll(POLL_LIST)
            reconciler.apply_poll_items(
                ticket,
                [make_notification(notification_id, read=read) for notification_id, read in step[1]],
            )

    # Once read, an item stays read in every later snapshot.
    read_since: dict[int, int] = {}
    for index, change in enumerate(changes):
        for item in change.snapshot.items:
            if item.read:
                read_since.setdefault(item.id, index)
            else:
                assert item.id not in read_since
    snapshot = reconciler.snapshot
    assert {item.id: item.read for item in snapshot.items} == expected_read
    assert snapshot.unread_count == expected_count
    assert snapshot.unread_count == sum(1 for item in snapshot.items if not item.read)
