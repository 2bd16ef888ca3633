import asyncio
import time

import jwt

from tezeus.client.monitor import SIGNED_OUT, SessionMonitor, session_problem
from tezeus.client.notifications import Notifier
from tezeus.client.session import CachedUser, ClientSession, SelectedWorkspace


def _token(exp_offset):
    return jwt.encode({"sub": "u1", "exp": int(time.time()) + exp_offset}, "monitor-test-secret-0123456789abcdef", algorithm="HS256")


def _session(token=None):
    return ClientSession(
        user=CachedUser(id="u1", email="ana@acme.test"),
        workspace=SelectedWorkspace(workspace_id="w1"),
        access_token=token,
    )


class Recorder:
    def __init__(self):
        self.calls = []

    def logout(self):
        self.calls.append("logout")

    async def redirect(self):
        self.calls.append("redirect")


def _monitor(session, recorder, notifier, interval=60.0):
    return SessionMonitor(
        session, notifier, on_logout=recorder.logout, on_redirect=recorder.redirect, interval=interval
    )


def test_session_problem_reasons():
    assert session_problem(ClientSession()) == "no_cached_user"
    assert session_problem(ClientSession(user=CachedUser(id="u1"))) == "incomplete_user"
    assert session_problem(_session("not-a-jwt")) == "undecodable_token"
    assert session_problem(_session(_token(-10))) == "token_expired"
    assert session_problem(_session(_token(3600))) is None
    assert session_problem(_session()) is None


async def test_start_without_user_forces_logout():
    recorder, notifier = Recorder(), Notifier()
    session = ClientSession()
    monitor = _monitor(session, recorder, notifier)

    await monitor.start()

    assert recorder.calls == ["logout", "redirect"]
    assert monitor.is_running is False
    assert monitor.forced_logout_reason == "no_cached_user"
    assert notifier.last.title == "Session expired"
    assert notifier.last.is_error


async def test_expired_token_invalidates_session():
    recorder, notifier = Recorder(), Notifier()
    session = _session(_token(-5))
    monitor = _monitor(session, recorder, notifier)

    await monitor.start()

    assert monitor.forced_logout_reason == "token_expired"
    assert session.user is None
    assert session.workspace is None
    assert session.access_token is None


async def test_valid_session_keeps_polling_until_stopped():
    recorder, notifier = Recorder(), Notifier()
    monitor = _monitor(_session(_token(3600)), recorder, notifier, interval=0.01)

    await monitor.start()
    await asyncio.sleep(0.05)
    assert monitor.is_running is True

    await monitor.stop()
    assert monitor.is_running is False
    assert recorder.calls == []
    assert notifier.history == []


async def test_periodic_check_detects_lost_user():
    recorder, notifier = Recorder(), Notifier()
    session = _session()
    monitor = _monitor(session, recorder, notifier, interval=0.01)

    await monitor.start()
    session.user = None
    for _ in range(50):
        if monitor.forced_logout_reason:
            break
        await asyncio.sleep(0.01)

    assert monitor.forced_logout_reason == "no_cached_user"
    assert recorder.calls == ["logout", "redirect"]
    await monitor.stop()


async def test_signed_out_event_logs_out_once():
    recorder, notifier = Recorder(), Notifier()
    monitor = _monitor(_session(), recorder, notifier)

    await monitor.start()
    await monitor.handle_auth_event(SIGNED_OUT)
    await monitor.handle_auth_event(SIGNED_OUT)
    await monitor.stop()

    assert monitor.forced_logout_reason == "signed_out"
    assert recorder.calls == ["logout", "redirect"]
    assert len(notifier.history) == 1


async def test_auth_events_ignored_when_not_running():
    recorder, notifier = Recorder(), Notifier()
    monitor = _monitor(_session(), recorder, notifier)

    await monitor.handle_auth_event(SIGNED_OUT)
    await monitor.handle_auth_event("TOKEN_REFRESHED")

    assert recorder.calls == []
    assert monitor.forced_logout_reason is None


def test_non_numeric_expiry_is_undecodable():
    token = jwt.encode({"sub": "u1", "exp": "soon"}, "monitor-test-secret-0123456789abcdef", algorithm="HS256")
    assert session_problem(_session(token)) == "undecodable_token"


async def test_non_numeric_expiry_forces_logout():
    recorder, notifier = Recorder(), Notifier()
    token = jwt.encode({"sub": "u1", "exp": "soon"}, "monitor-test-secret-0123456789abcdef", algorithm="HS256")
    session = _session(token)
    monitor = _monitor(session, recorder, notifier)

    await monitor.start()

    assert monitor.forced_logout_reason == "undecodable_token"
    assert session.user is None
    assert recorder.calls == ["logout", "redirect"]


async def test_restart_after_sign_in_enforces_expiry_again():
    recorder, notifier = Recorder(), Notifier()
    session = _session(_token(-5))
    monitor = _monitor(session, recorder, notifier)

    await monitor.start()
    assert session.user is None

    session.sign_in(CachedUser(id="u1", email="ana@acme.test"), _token(-5))
    await monitor.start()

    assert monitor.forced_logout_reason == "token_expired"
    assert session.user is None
    assert session.access_token is None
    assert recorder.calls == ["logout", "redirect", "logout", "redirect"]
    assert len(notifier.history) == 2


async def test_restart_after_sign_in_resumes_polling():
    recorder, notifier = Recorder(), Notifier()
    session = _session(_token(-5))
    monitor = _monitor(session, recorder, notifier, interval=0.01)

    await monitor.start()
    session.sign_in(CachedUser(id="u1", email="ana@acme.test"), _token(3600))
    await monitor.start()

    assert monitor.is_running is True
    assert monitor.forced_logout_reason is None

    session.user = None
    for _ in range(50):
        if monitor.forced_logout_reason:
            break
        await asyncio.sleep(0.01)

    assert monitor.forced_logout_reason == "no_cached_user"
    assert recorder.calls == ["logout", "redirect", "logout", "redirect"]
    await monitor.stop()
