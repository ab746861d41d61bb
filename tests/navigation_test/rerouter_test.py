import asyncio
import logging

from navguide.models import Coord, NavigationMode
from navguide.navigator import NavigationSession

# Debounce in these tests is 0.2 s (see the config fixture)
SETTLE = 0.5


def test_sustained_off_route_requests_one_route(config, clock, fake_router, two_step_route,
                                                reroute_route, destination, origin, sample):
    service = fake_router(route=reroute_route)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        assert session.rerouter.is_pending
        await asyncio.sleep(0.02)
        session.update(sample(0.001, 0.0051, 2.0))
        await asyncio.sleep(SETTLE)
        return session

    session = asyncio.run(scenario())

    assert len(service.calls) == 1
    requested_origin, requested_destination, _ = service.calls[0]
    assert requested_origin == Coord(0.001, 0.0051)
    assert requested_destination == destination.coord

    state = session.state
    assert state.mode is NavigationMode.ACTIVE
    assert state.route is reroute_route
    assert state.destination == destination
    assert state.current_step_index == 0
    assert not state.is_off_route
    assert not state.is_rerouting
    assert session.rerouter.reroute_count == 1


def test_back_on_route_before_debounce_makes_no_request(config, clock, fake_router, two_step_route,
                                                        reroute_route, destination, origin, sample):
    service = fake_router(route=reroute_route)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        await asyncio.sleep(0.02)
        session.update(sample(0.0002, 0.0052, 2.0))
        assert not session.rerouter.is_pending
        await asyncio.sleep(SETTLE)
        return session

    session = asyncio.run(scenario())

    assert service.calls == []
    assert session.state.route is two_step_route


def test_failed_reroute_retries_on_next_sample(config, clock, fake_router, two_step_route,
                                               destination, origin, sample):
    service = fake_router(fail=True)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        await asyncio.sleep(SETTLE)

        state = session.state
        assert len(service.calls) == 1
        assert state.is_off_route
        assert not state.is_rerouting
        assert session.rerouter.failure_count == 1
        assert not session.rerouter.is_pending

        session.update(sample(0.001, 0.0051, 2.0))
        assert session.rerouter.is_pending
        await asyncio.sleep(SETTLE)
        return session

    session = asyncio.run(scenario())

    assert len(service.calls) == 2
    assert session.state.route is two_step_route
    assert session.state.mode is NavigationMode.ACTIVE


def test_only_one_request_in_flight(config, clock, fake_router, two_step_route,
                                    reroute_route, destination, origin, sample):
    service = fake_router(route=reroute_route, hold=True)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        await asyncio.sleep(SETTLE)
        assert session.rerouter.in_flight
        assert session.state.is_rerouting

        # Still off route while the request is pending
        session.update(sample(0.001, 0.0051, 2.0))
        assert not session.rerouter.is_pending
        await asyncio.sleep(SETTLE)
        assert len(service.calls) == 1

        state = session.state
        assert state.is_off_route and state.is_rerouting

        service.release()
        await asyncio.sleep(0.05)
        return session

    session = asyncio.run(scenario())

    assert len(service.calls) == 1
    state = session.state
    assert state.route is reroute_route
    assert not state.is_rerouting
    assert not state.is_off_route


def test_response_after_end_is_discarded(config, clock, fake_router, two_step_route,
                                         reroute_route, destination, origin, sample):
    service = fake_router(route=reroute_route, hold=True)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        await asyncio.sleep(SETTLE)
        assert session.rerouter.in_flight

        session.end()
        assert not session.rerouter.in_flight
        service.release()
        await asyncio.sleep(0.05)
        return session

    session = asyncio.run(scenario())

    state = session.state
    assert state.mode is NavigationMode.IDLE
    assert state.route is None
    assert session.rerouter.reroute_count == 0


def test_end_cancels_pending_debounce(config, clock, fake_router, two_step_route,
                                      reroute_route, destination, origin, sample):
    service = fake_router(route=reroute_route)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        assert session.rerouter.is_pending

        session.end()
        assert not session.rerouter.is_pending
        await asyncio.sleep(SETTLE)
        return session

    session = asyncio.run(scenario())

    assert service.calls == []
    assert session.state.mode is NavigationMode.IDLE


def test_next_session_still_reroutes(config, clock, fake_router, two_step_route,
                                     reroute_route, destination, origin, sample):
    service = fake_router(route=reroute_route)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.end()

        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        await asyncio.sleep(SETTLE)
        return session

    session = asyncio.run(scenario())

    assert len(service.calls) == 1
    assert session.state.route is reroute_route


def test_empty_reroute_response_counts_as_failure(config, clock, fake_router, two_step_route,
                                                  destination, origin, sample):
    service = fake_router(route=None)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        await asyncio.sleep(SETTLE)

        state = session.state
        assert state.route is two_step_route
        assert state.is_off_route
        assert not state.is_rerouting
        assert session.rerouter.failure_count == 1

        # Guidance keeps going and the next sample re-arms the debounce
        session.update(sample(0.001, 0.0051, 2.0))
        assert session.rerouter.is_pending
        await asyncio.sleep(SETTLE)
        return session

    session = asyncio.run(scenario())

    assert len(service.calls) == 2
    assert session.rerouter.failure_count == 2
    assert session.rerouter.reroute_count == 0
    assert session.state.mode is NavigationMode.ACTIVE


def test_new_preview_drops_request_in_flight(config, clock, fake_router, two_step_route,
                                             three_step_route, reroute_route, destination,
                                             origin, sample):
    service = fake_router(route=reroute_route, hold=True)

    async def scenario():
        session = NavigationSession(service, config, clock=clock)
        session.begin(two_step_route, destination, origin)
        session.update(sample(0.001, 0.005, 1.0))
        await asyncio.sleep(SETTLE)
        assert session.rerouter.in_flight

        session.preview(three_step_route, destination, origin)
        service.release()
        await asyncio.sleep(0.05)
        return session

    session = asyncio.run(scenario())

    state = session.state
    assert state.mode is NavigationMode.PREVIEW
    assert state.route is three_step_route
    assert not state.is_rerouting
    assert session.rerouter.reroute_count == 0
    assert not session.rerouter.in_flight


def test_off_route_without_event_loop_warns_once(caplog, config, clock, fake_router, two_step_route,
                                                 reroute_route, destination, origin, sample):
    session = NavigationSession(fake_router(route=reroute_route), config, clock=clock)
    session.begin(two_step_route, destination, origin)

    with caplog.at_level(logging.WARNING):
        session.update(sample(0.001, 0.005, 1.0))
        session.update(sample(0.001, 0.0051, 2.0))

    assert session.state.is_off_route
    assert not session.rerouter.is_pending
    warnings = [r for r in caplog.records if "no event loop" in r.getMessage()]
    assert len(warnings) == 1
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
