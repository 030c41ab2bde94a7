"""Unit tests for SessionManager."""

from typing import Any, List, Mapping
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from application.identity.session_manager import SessionManager
from domain.identity.core.entities.profiles import StudentProfile, VendorProfile
from domain.identity.core.session import Session, SessionState
from domain.identity.core.value_objects.role import Role
from domain.shared.errors import (
    DuplicateEmailError,
    InvalidCredentialError,
    NetworkError,
    PartialWriteError,
    SessionDisposedError,
)
from infrastructure.remote_store.in_memory_store import InMemoryRemoteStore

STUDENT_SIGN_UP = {"role": "student", "firstName": "Ana", "lastName": "Lopez"}
VENDOR_SIGN_UP = {"role": "vendor", "name": "Campus Cafe", "category": "Cafe"}


class VendorWriteFailingStore(InMemoryRemoteStore):
    """Store whose vendors/ writes always fail."""

    async def set_document(self, path: str, data: Mapping[str, Any], merge: bool = False) -> None:
        if path.startswith("vendors/"):
            raise NetworkError("set_document", "vendors unreachable")
        await super().set_document(path, data, merge=merge)


class SessionRecorder:
    def __init__(self) -> None:
        self.sessions: List[Session] = []

    async def __call__(self, session: Session) -> None:
        self.sessions.append(session)

    @property
    def states(self) -> List[SessionState]:
        return [s.state for s in self.sessions]


@pytest_asyncio.fixture
async def manager(provider, store):
    """Started SessionManager over in-memory adapters."""
    manager = SessionManager(provider, store)
    await manager.start()
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture
async def recorder(manager):
    recorder = SessionRecorder()
    await manager.observe_session(recorder)
    return recorder


class TestSignUp:
    """Test sign-up role branching and failure handling."""

    @pytest.mark.asyncio
    async def test_student_sign_up(self, manager, store, recorder) -> None:
        """Test a student gets one users document and an authenticated session."""
        result = await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)

        identity = result.unwrap()
        assert identity.role is Role.STUDENT
        user_doc = await store.get_document(f"users/{identity.id}")
        assert user_doc.data["displayName"] == "Ana Lopez"
        assert user_doc.data["metrics"] == {"moneySaved": 0.0, "mealsRescued": 0}
        assert await store.get_document(f"vendors/{identity.id}") is None

        session = manager.current
        assert session.is_authenticated
        assert isinstance(session.profile, StudentProfile)
        assert session.profile.first_name == "Ana"
        assert not session.degraded

    @pytest.mark.asyncio
    async def test_vendor_sign_up(self, manager, store) -> None:
        """Test a vendor gets a users record and a vendors record."""
        result = await manager.sign_up("cafe@campus.edu", "secret1", VENDOR_SIGN_UP)

        identity = result.unwrap()
        user_doc = await store.get_document(f"users/{identity.id}")
        vendor_doc = await store.get_document(f"vendors/{identity.id}")
        assert user_doc.data["role"] == "vendor"
        assert user_doc.data["vendorId"] == identity.id
        assert vendor_doc.data["name"] == "Campus Cafe"
        assert vendor_doc.data["ratings"] == {"average": 0.0, "count": 0}
        assert isinstance(manager.current.profile, VendorProfile)

    @pytest.mark.asyncio
    async def test_provider_emissions_during_sign_up_are_ignored(
        self, manager, recorder
    ) -> None:
        """Test observers see only the transitions published by sign-up itself."""
        await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)

        assert recorder.states == [
            SessionState.ANONYMOUS,
            SessionState.AUTHENTICATING,
            SessionState.AUTHENTICATED,
        ]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, manager, provider) -> None:
        """Test a second sign-up with the same email fails and keeps the session."""
        first = (await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)).unwrap()

        result = await manager.sign_up("ANA@campus.edu", "other12", STUDENT_SIGN_UP)

        assert isinstance(result.error, DuplicateEmailError)
        assert manager.current.identity.id == first.id
        assert provider.account_count() == 1

    @pytest.mark.asyncio
    async def test_invalid_role_raises(self, manager) -> None:
        """Test role data without a known role is rejected before any call."""
        with pytest.raises(ValueError):
            await manager.sign_up("ana@campus.edu", "secret1", {"role": "admin"})

    @pytest.mark.asyncio
    async def test_failed_profile_write_is_compensated(self, provider) -> None:
        """Test a failing vendors write removes the users record and the account."""
        failing_store = VendorWriteFailingStore()
        manager = SessionManager(provider, failing_store)
        await manager.start()
        observed = SessionRecorder()
        await manager.observe_session(observed)

        result = await manager.sign_up("cafe@campus.edu", "secret1", VENDOR_SIGN_UP)

        error = result.error
        assert isinstance(error, PartialWriteError)
        assert error.compensated
        assert len(error.failed_steps) == 1
        assert error.failed_steps[0].startswith("vendors/")
        assert error.completed_steps[0].startswith("users/")
        assert isinstance(error.cause, NetworkError)
        assert failing_store.count() == 0
        assert provider.account_count() == 0
        assert provider.current_user is None
        assert observed.states[-1] is SessionState.ANONYMOUS
        await manager.dispose()

    @pytest.mark.asyncio
    async def test_transient_write_failure_is_retried(self, provider, flaky_store, store) -> None:
        """Test one failed profile write is retried within the saga."""
        manager = SessionManager(provider, flaky_store)
        await manager.start()
        flaky_store.fail("set_document", times=1)

        result = await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)

        assert result.ok
        assert store.count() == 1
        await manager.dispose()

    @pytest.mark.asyncio
    async def test_account_kept_when_deletion_fails(self, provider) -> None:
        """Test compensation reports failure when the account cannot be deleted."""
        manager = SessionManager(provider, VendorWriteFailingStore())
        await manager.start()

        with patch.object(
            provider, "delete_account", AsyncMock(side_effect=NetworkError("delete", "down"))
        ):
            result = await manager.sign_up("cafe@campus.edu", "secret1", VENDOR_SIGN_UP)

        assert isinstance(result.error, PartialWriteError)
        assert not result.error.compensated
        assert manager.current.state is SessionState.ANONYMOUS
        await manager.dispose()


class TestSignInAndOut:
    """Test sign-in, sign-out and password reset."""

    @pytest_asyncio.fixture
    async def ana(self, manager):
        """Registered student, signed out again."""
        identity = (
            await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)
        ).unwrap()
        await manager.sign_out()
        return identity

    @pytest.mark.asyncio
    async def test_sign_in(self, manager, ana, recorder) -> None:
        """Test successful sign-in publishes the resolved profile."""
        result = await manager.sign_in("ana@campus.edu", "secret1")

        assert result.value.id == ana.id
        assert recorder.states[-2:] == [SessionState.AUTHENTICATING, SessionState.AUTHENTICATED]
        assert manager.current.profile.display_name == "Ana Lopez"

    @pytest.mark.asyncio
    async def test_wrong_password(self, manager, ana) -> None:
        """Test invalid credentials return a failure and an anonymous session."""
        result = await manager.sign_in("ana@campus.edu", "wrong")

        assert isinstance(result.error, InvalidCredentialError)
        assert manager.current.state is SessionState.ANONYMOUS

    @pytest.mark.asyncio
    async def test_failed_sign_in_keeps_existing_session(self, manager, ana) -> None:
        """Test a rejected sign-in does not drop the current session."""
        await manager.sign_in("ana@campus.edu", "secret1")

        await manager.sign_in("ana@campus.edu", "wrong")

        assert manager.current.identity.id == ana.id

    @pytest.mark.asyncio
    async def test_network_error(self, manager, provider) -> None:
        """Test provider outages surface as NetworkError."""
        outage = AsyncMock(side_effect=NetworkError("sign_in", "offline"))
        with patch.object(provider, "sign_in", outage):
            result = await manager.sign_in("ana@campus.edu", "secret1")

        assert isinstance(result.error, NetworkError)
        assert manager.current.state is SessionState.ANONYMOUS

    @pytest.mark.asyncio
    async def test_profile_fetch_failure_degrades(self, provider, flaky_store, ana) -> None:
        """Test a failed profile read yields a default student profile."""
        manager = SessionManager(provider, flaky_store)
        await manager.start()
        flaky_store.fail("get_document", times=1)

        result = await manager.sign_in("ana@campus.edu", "secret1")

        assert result.ok
        session = manager.current
        assert session.is_authenticated
        assert session.degraded
        assert session.profile == StudentProfile.default(ana.id)
        await manager.dispose()

    @pytest.mark.asyncio
    async def test_vendor_without_vendor_record(self, manager, store) -> None:
        """Test a vendor whose vendors document is missing gets a default profile."""
        vendor = (await manager.sign_up("cafe@campus.edu", "secret1", VENDOR_SIGN_UP)).unwrap()
        await manager.sign_out()
        await store.delete_document(f"vendors/{vendor.id}")

        await manager.sign_in("cafe@campus.edu", "secret1")

        assert manager.current.role is Role.VENDOR
        assert manager.current.degraded
        assert manager.current.profile == VendorProfile.default(vendor.id)

    @pytest.mark.asyncio
    async def test_sign_out_survives_provider_failure(self, manager, provider, ana) -> None:
        """Test the local session is cleared even if the provider call fails."""
        await manager.sign_in("ana@campus.edu", "secret1")

        with patch.object(provider, "sign_out", AsyncMock(side_effect=RuntimeError("boom"))):
            await manager.sign_out()

        assert manager.current.state is SessionState.ANONYMOUS

    @pytest.mark.asyncio
    async def test_reset_password(self, manager, provider, ana) -> None:
        """Test reset requests succeed for known and unknown emails alike."""
        known = await manager.reset_password("ana@campus.edu")
        unknown = await manager.reset_password("nobody@campus.edu")

        assert known.ok and unknown.ok
        assert provider.password_resets == ["ana@campus.edu"]


class TestProviderTransitions:
    """Test transitions initiated by the identity provider."""

    @pytest.mark.asyncio
    async def test_token_refresh_reuses_cached_profile(self, manager, provider, store) -> None:
        """Test a token refresh for the same identity does not refetch the profile."""
        identity = (
            await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)
        ).unwrap()
        await store.delete_document(f"users/{identity.id}")

        await provider.simulate_token_refresh()

        session = manager.current
        assert session.identity.id == identity.id
        assert not session.degraded
        assert session.profile.first_name == "Ana"

    @pytest.mark.asyncio
    async def test_remote_invalidation(self, manager, provider, recorder) -> None:
        """Test a session revoked by the provider becomes anonymous."""
        await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)

        await provider.simulate_session_invalidation()

        assert recorder.states[-1] is SessionState.ANONYMOUS
        assert manager.current.identity is None

    @pytest.mark.asyncio
    async def test_restored_session_on_start(self, provider, store, seed) -> None:
        """Test a session already held by the provider is resolved on start."""
        user = await provider.create_account("ana@campus.edu", "secret1")
        await seed(store, user.uid, user.email, STUDENT_SIGN_UP)
        manager = SessionManager(provider, store)

        await manager.start()

        assert manager.current.is_authenticated
        assert manager.current.identity.id == user.uid
        await manager.dispose()

    @pytest.mark.asyncio
    async def test_sign_in_from_elsewhere(self, manager, provider, store, seed) -> None:
        """Test a provider sign-in outside the manager resolves a new session."""
        user = await provider.create_account("ben@campus.edu", "secret1")
        await seed(store, user.uid, user.email, VENDOR_SIGN_UP)
        await provider.sign_out()

        await provider.sign_in("ben@campus.edu", "secret1")

        assert manager.current.role is Role.VENDOR
        assert manager.current.profile.name == "Campus Cafe"


class TestObserversAndLifecycle:
    """Test observer delivery and dispose semantics."""

    @pytest.mark.asyncio
    async def test_observer_called_immediately(self, manager) -> None:
        """Test a new observer receives the current session right away."""
        recorder = SessionRecorder()

        await manager.observe_session(recorder)

        assert recorder.states == [SessionState.ANONYMOUS]

    @pytest.mark.asyncio
    async def test_failing_observer_is_isolated(self, manager) -> None:
        """Test one failing observer does not prevent delivery to others."""
        failing = AsyncMock(side_effect=RuntimeError("render failed"))
        recorder = SessionRecorder()
        await manager.observe_session(failing)
        await manager.observe_session(recorder)

        await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)

        assert recorder.states[-1] is SessionState.AUTHENTICATED
        assert failing.await_count == 3

    @pytest.mark.asyncio
    async def test_unsubscribe(self, manager) -> None:
        """Test an unsubscribed observer stops receiving sessions."""
        recorder = SessionRecorder()
        unsubscribe = await manager.observe_session(recorder)
        unsubscribe()

        await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)

        assert recorder.states == [SessionState.ANONYMOUS]

    @pytest.mark.asyncio
    async def test_refresh_profile(self, manager, store) -> None:
        """Test refresh_profile picks up remote profile changes."""
        identity = (
            await manager.sign_up("ana@campus.edu", "secret1", STUDENT_SIGN_UP)
        ).unwrap()
        await store.set_document(f"users/{identity.id}", {"displayName": "Ana L."}, merge=True)

        result = await manager.refresh_profile()

        assert result.ok
        assert manager.current.profile.display_name == "Ana L."

    @pytest.mark.asyncio
    async def test_refresh_profile_requires_session(self, manager) -> None:
        """Test refresh_profile without a session raises ValueError."""
        with pytest.raises(ValueError):
            await manager.refresh_profile()

    @pytest.mark.asyncio
    async def test_operations_require_start(self, provider, store) -> None:
        """Test calling sign_in before start raises RuntimeError."""
        manager = SessionManager(provider, store)

        with pytest.raises(RuntimeError):
            await manager.sign_in("ana@campus.edu", "secret1")

    @pytest.mark.asyncio
    async def test_sign_out_before_start_is_local(self, provider, store) -> None:
        """Test sign_out on a manager that was never started ends anonymous."""
        manager = SessionManager(provider, store)
        recorder = SessionRecorder()
        await manager.observe_session(recorder)

        await manager.sign_out()

        assert recorder.states == [SessionState.UNKNOWN, SessionState.ANONYMOUS]
        assert manager.current.state is SessionState.ANONYMOUS

    @pytest.mark.asyncio
    async def test_dispose(self, provider, store) -> None:
        """Test dispose is idempotent and blocks further operations."""
        manager = SessionManager(provider, store)
        await manager.start()
        recorder = SessionRecorder()
        await manager.observe_session(recorder)

        await manager.dispose()
        await manager.dispose()
        await provider.create_account("ana@campus.edu", "secret1")

        assert recorder.states == [SessionState.ANONYMOUS]
        with pytest.raises(SessionDisposedError):
            await manager.sign_in("ana@campus.edu", "secret1")
        with pytest.raises(SessionDisposedError):
            await manager.observe_session(recorder)
