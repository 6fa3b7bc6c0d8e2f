"""Tests for the session resolution gate."""

import pytest

from freightsync import (
    ClientConfig,
    FreightClient,
    GateState,
    GuardDecision,
    SessionStore,
    TimeoutExpired,
    route_guard,
)
from tests.conftest import BASE_URL, FakeScheduler, FakeTransport, settle

PROFILE = {"_id": "p1", "companyName": "Anatolia Cargo"}


class TestRouteGuard:
    """Tests for route_guard."""

    def test_mapping(self) -> None:
        """Test every state maps to its route decision."""
        assert route_guard(GateState.NO_TOKEN) is GuardDecision.REDIRECT_LOGIN
        assert route_guard(GateState.RESOLVING) is GuardDecision.WAIT
        assert route_guard(GateState.RESOLVED_ABSENT) is GuardDecision.REDIRECT_CREATE_PROFILE
        assert route_guard(GateState.RESOLVED_PRESENT) is GuardDecision.ALLOW


class TestInitialState:
    """Tests for the state the gate starts in."""

    async def test_no_token(self, client: FreightClient, transport: FakeTransport) -> None:
        """Test that a session without a token redirects to login."""
        gate = client.session_gate()
        assert gate.state is GateState.NO_TOKEN
        assert gate.decision is GuardDecision.REDIRECT_LOGIN
        assert transport.calls == []
        gate.close()

    async def test_profile_already_known(
        self, client: FreightClient, session: SessionStore, transport: FakeTransport
    ) -> None:
        """Test that a known profile allows immediately without fetching."""
        session.set_token("tok")
        session.set_profile(PROFILE)
        gate = client.session_gate()
        assert gate.state is GateState.RESOLVED_PRESENT
        assert transport.calls == []
        gate.close()

    async def test_token_without_profile_resolves(
        self, client: FreightClient, session: SessionStore, transport: FakeTransport
    ) -> None:
        """Test that a bare token starts resolving and fetches the profile."""
        release = transport.hold("GET", "/profiles/me")
        session.set_token("tok")
        gate = client.session_gate()
        assert gate.state is GateState.RESOLVING
        assert gate.decision is GuardDecision.WAIT
        assert gate.snapshot.is_resolving
        assert gate.snapshot.token == "tok"
        await settle()
        assert transport.count("GET", "/profiles/me") == 1

        release.set()
        await settle()
        gate.close()


class TestTimeBox:
    """Tests for the bounded resolution window."""

    async def test_timeout_at_exactly_three_seconds(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that an unanswered fetch resolves absent at 3000 ms, not before."""
        release = transport.hold("GET", "/profiles/me")
        session.set_token("tok")
        gate = client.session_gate()

        scheduler.advance(2.999)
        assert gate.state is GateState.RESOLVING
        scheduler.advance(0.001)
        assert gate.state is GateState.RESOLVED_ABSENT
        assert gate.decision is GuardDecision.REDIRECT_CREATE_PROFILE
        assert isinstance(gate.last_timeout, TimeoutExpired)
        assert session.profile is None

        release.set()
        await settle()
        gate.close()

    async def test_fetch_at_500ms_resolves_at_window_end(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that an early profile is only acted on when the window closes."""
        release = transport.hold("GET", "/profiles/me")
        transport.respond("GET", "/profiles/me", PROFILE)
        session.set_token("tok")
        gate = client.session_gate()

        scheduler.advance(0.5)
        release.set()
        await settle()
        assert gate.state is GateState.RESOLVING
        assert session.profile is None

        scheduler.advance(2.499)
        assert gate.state is GateState.RESOLVING
        scheduler.advance(0.001)
        assert gate.state is GateState.RESOLVED_PRESENT
        assert session.profile == PROFILE
        assert gate.last_timeout is None
        gate.close()

    async def test_refetching_profile_still_counts(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that a fetched profile survives an invalidation before the window ends."""
        transport.respond("GET", "/profiles/me", PROFILE)
        session.set_token("tok")
        gate = client.session_gate()
        await settle()

        scheduler.advance(1.0)
        release = transport.hold("GET", "/profiles/me")
        client.invalidate(["Profile"])
        await settle()
        assert transport.count("GET", "/profiles/me") == 2

        scheduler.advance(2.0)
        assert gate.state is GateState.RESOLVED_PRESENT
        assert session.profile == PROFILE
        assert gate.last_timeout is None

        release.set()
        await settle()
        gate.close()

    async def test_failed_refetch_keeps_profile(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that a failed refetch inside the window does not discard the profile."""
        transport.respond("GET", "/profiles/me", PROFILE)
        session.set_token("tok")
        gate = client.session_gate()
        await settle()

        transport.fail("GET", "/profiles/me")
        client.invalidate(["Profile"])
        await settle()

        scheduler.advance(3)
        assert gate.state is GateState.RESOLVED_PRESENT
        assert session.profile == PROFILE
        gate.close()

    async def test_failed_fetch_resolves_absent(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that a failed profile fetch ends absent when the window closes."""
        transport.fail("GET", "/profiles/me")
        session.set_token("tok")
        gate = client.session_gate()
        await settle()
        assert gate.state is GateState.RESOLVING

        scheduler.advance(3)
        assert gate.state is GateState.RESOLVED_ABSENT
        gate.close()

    async def test_null_profile_resolves_absent(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that an empty profile body counts as no profile."""
        transport.respond("GET", "/profiles/me", None)
        session.set_token("tok")
        gate = client.session_gate()
        await settle()

        scheduler.advance(3)
        assert gate.state is GateState.RESOLVED_ABSENT
        gate.close()


class TestResolveOnFetch:
    """Tests for resolving as soon as the profile arrives."""

    @pytest.fixture
    def config(self) -> ClientConfig:
        return ClientConfig(BASE_URL, resolve_profile_on_fetch=True)

    async def test_resolves_when_fetch_succeeds(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test early resolution on a successful fetch."""
        release = transport.hold("GET", "/profiles/me")
        transport.respond("GET", "/profiles/me", PROFILE)
        session.set_token("tok")
        gate = client.session_gate()

        scheduler.advance(0.5)
        release.set()
        await settle()
        assert gate.state is GateState.RESOLVED_PRESENT
        assert session.profile == PROFILE
        assert scheduler.pending == 0
        gate.close()

    async def test_timer_still_bounds_wait(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that the window still closes when the fetch never answers."""
        release = transport.hold("GET", "/profiles/me")
        session.set_token("tok")
        gate = client.session_gate()

        scheduler.advance(3)
        assert gate.state is GateState.RESOLVED_ABSENT

        release.set()
        await settle()
        gate.close()


class TestCancellation:
    """Tests for re-arming on session changes."""

    async def test_token_cleared_while_resolving(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that logging out cancels the window."""
        transport.hold("GET", "/profiles/me")
        session.set_token("tok")
        gate = client.session_gate()

        session.clear_token()
        assert gate.state is GateState.NO_TOKEN
        assert scheduler.pending == 0

        scheduler.advance(5)
        assert gate.state is GateState.NO_TOKEN
        assert gate.last_timeout is None
        gate.close()

    async def test_profile_set_while_resolving(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that a profile appearing elsewhere resolves present immediately."""
        transport.hold("GET", "/profiles/me")
        session.set_token("tok")
        gate = client.session_gate()

        session.set_profile(PROFILE)
        assert gate.state is GateState.RESOLVED_PRESENT
        assert scheduler.pending == 0

        scheduler.advance(5)
        assert gate.state is GateState.RESOLVED_PRESENT
        gate.close()

    async def test_new_token_rearms(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that signing in again starts a fresh window."""
        transport.fail("GET", "/profiles/me")
        session.set_token("tok")
        gate = client.session_gate()
        scheduler.advance(3)
        assert gate.state is GateState.RESOLVED_ABSENT

        client.logout()
        assert gate.state is GateState.NO_TOKEN

        transport.respond("GET", "/profiles/me", PROFILE)
        session.set_token("tok2")
        assert gate.state is GateState.RESOLVING
        await settle()
        scheduler.advance(3)
        assert gate.state is GateState.RESOLVED_PRESENT
        gate.close()

    async def test_on_change_sees_transitions(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that the change callback gets each distinct state once."""
        transport.respond("GET", "/profiles/me", PROFILE)
        seen: list[GateState] = []
        gate = client.session_gate(seen.append)

        session.set_token("tok")
        await settle()
        scheduler.advance(3)

        assert seen == [GateState.RESOLVING, GateState.RESOLVED_PRESENT]
        gate.close()

    async def test_close_detaches(
        self,
        client: FreightClient,
        session: SessionStore,
        scheduler: FakeScheduler,
        transport: FakeTransport,
    ) -> None:
        """Test that a closed gate ignores session changes and timers."""
        transport.hold("GET", "/profiles/me")
        session.set_token("tok")
        gate = client.session_gate()
        gate.close()

        assert scheduler.pending == 0
        session.clear_token()
        assert gate.state is GateState.RESOLVING
