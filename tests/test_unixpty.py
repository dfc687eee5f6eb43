from __future__ import annotations

import os
import signal

import pytest

pytestmark = pytest.mark.skipif(os.name == "nt", reason="requires a POSIX pty")

if os.name != "nt":
    from runny.pty._unixpty import spawn


@pytest.fixture
def session():
    session = spawn(["sleep", "1000"])
    yield session
    session.forceful_stop()
    session.wait(5)
    session.close_writer()
    session.close_reader()


def test_write_fails_once_reaped(session) -> None:
    session.forceful_stop()
    assert session.wait(5) == -signal.SIGKILL
    with pytest.raises(BrokenPipeError):
        session.write(b"late")


def test_reused_group_id_is_not_signalled(session, monkeypatch: pytest.MonkeyPatch) -> None:
    session.forceful_stop()
    session.wait(5)

    sent = []
    monkeypatch.setattr(os, "getpgid", lambda pid: pid)
    monkeypatch.setattr(os, "killpg", lambda pgid, sig: sent.append((pgid, sig)))
    session.forceful_stop()
    session.graceful_stop()
    assert sent == []


def test_group_of_live_child_is_signalled(session, monkeypatch: pytest.MonkeyPatch) -> None:
    sent = []
    monkeypatch.setattr(os, "killpg", lambda pgid, sig: sent.append((pgid, sig)))
    session.graceful_stop()
    assert sent == [(session.pid, signal.SIGTERM)]
