import threading

import pytest

from tests.helpers.fakes import RecordingSink, SessionPool
from tests.helpers.web_stress_imports import CrawlTarget, RunSettings
from web_stress.recon.orchestrator import Orchestrator  # type: ignore[import]

SEED = "https://www.example.com/"
SITE = {SEED: ["/one", "/two"]}


def make_orchestrator(pool, sink=None, **kwargs):
    return Orchestrator(pool, sink or RecordingSink(), sleep=lambda _seconds: None, poll_interval=0.01, **kwargs)


def test_each_user_runs_every_repeat_on_its_own_session():
    pool = SessionPool(SITE)
    settings = RunSettings(max_depth=0, repeat_count=2, user_count=3)

    summary = make_orchestrator(pool).run(settings, CrawlTarget.from_seed(SEED))

    assert len(pool.sessions) == 3
    assert len({id(session) for session in pool.sessions}) == 3
    assert all(session.opened == 1 and session.closed == 1 for session in pool.sessions)
    assert all(session.visits == [SEED, SEED] for session in pool.sessions)
    assert sum(outcome.sessions_run for outcome in summary.outcomes) == 6
    assert [outcome.worker_id for outcome in summary.outcomes] == [0, 1, 2]
    assert summary.all_completed
    assert summary.total_navigations == 6


def test_recursive_run_follows_links_for_every_user():
    pool = SessionPool(SITE)
    settings = RunSettings(max_depth=1, user_count=2)

    summary = make_orchestrator(pool).run(settings, CrawlTarget.from_seed(SEED))

    for session in pool.sessions:
        assert session.visits[0] == SEED
        assert sorted(session.visits[1:]) == [SEED + "one", SEED + "two"]
    assert summary.total_navigations == 6


def test_crashing_user_does_not_affect_siblings():
    pool = SessionPool(SITE, crash_first=True)
    sink = RecordingSink()
    settings = RunSettings(max_depth=0, user_count=3)

    summary = make_orchestrator(pool, sink).run(settings, CrawlTarget.from_seed(SEED))

    assert len(summary.failed_workers) == 1
    assert len(summary.completed_workers) == 2
    failed = summary.failed_workers[0]
    assert failed.error == "RuntimeError: renderer crashed"
    assert "crashed: renderer crashed" in sink.messages(failed.worker_id)
    assert all(session.closed == 1 for session in pool.sessions)
    assert not summary.all_completed


def test_shutdown_request_still_joins_workers_to_completion():
    pool = SessionPool(SITE)
    shutdown = threading.Event()
    shutdown.set()
    settings = RunSettings(max_depth=0, repeat_count=3, user_count=2)

    summary = make_orchestrator(pool, shutdown_event=shutdown).run(settings, CrawlTarget.from_seed(SEED))

    assert summary.shutdown_requested is True
    assert summary.all_completed
    assert all(len(session.visits) == 3 for session in pool.sessions)


def test_cancel_on_shutdown_stops_workers_before_navigating():
    pool = SessionPool(SITE)
    shutdown = threading.Event()
    shutdown.set()
    settings = RunSettings(max_depth=2, repeat_count=3, user_count=2)

    summary = make_orchestrator(pool, shutdown_event=shutdown, cancel_on_shutdown=True).run(
        settings, CrawlTarget.from_seed(SEED)
    )

    assert summary.total_navigations == 0
    assert all(session.visits == [] for session in pool.sessions)
    assert summary.all_completed


def test_list_target_is_walked_by_every_user():
    pool = SessionPool()
    urls = [SEED + "x", SEED + "y"]
    settings = RunSettings(user_count=2)

    summary = make_orchestrator(pool).run(settings, CrawlTarget.from_list(urls))

    assert all(session.visits == urls for session in pool.sessions)
    assert summary.elapsed_seconds >= 0
    assert summary.shutdown_requested is False


def test_every_user_reports_completion_on_its_lane():
    pool = SessionPool(SITE)
    sink = RecordingSink()
    settings = RunSettings(max_depth=0, user_count=4)

    make_orchestrator(pool, sink).run(settings, CrawlTarget.from_seed(SEED))

    assert sorted(sink.finished()) == [0, 1, 2, 3]


def test_interrupt_abandons_running_users_without_joining():
    release = threading.Event()
    pool = SessionPool(SITE)

    def blocking_session():
        session = pool()
        navigate = session.navigate

        def slow_navigate(url):
            release.wait(5)
            return navigate(url)

        session.navigate = slow_navigate
        return session

    orchestrator = make_orchestrator(blocking_session)

    def interrupted_wait(_futures):
        raise KeyboardInterrupt

    orchestrator._wait_for_workers = interrupted_wait
    try:
        with pytest.raises(KeyboardInterrupt):
            orchestrator.run(RunSettings(max_depth=0, user_count=2), CrawlTarget.from_seed(SEED))
        assert all(session.visits == [] for session in pool.sessions)
    finally:
        release.set()
