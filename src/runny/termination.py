from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import TerminateError

if TYPE_CHECKING:
    from .pty import Session

__all__ = ["terminate_session", "REAP_TIMEOUT"]

logger = logging.getLogger(__name__)

REAP_TIMEOUT = 5.0


def terminate_session(session: Session, grace_period: float) -> int:
    """Stop every process in the session and reap the child.

    The graceful request goes to the whole group first.  After the grace
    period the group is killed outright, even when the child itself already
    exited, since descendants may have ignored the request.  Returns the
    child's raw return code.
    """
    pid = session.pid
    try:
        session.graceful_stop()
    except TerminateError as e:
        logger.debug("Graceful stop of %d failed: %s", pid, e)

    if grace_period > 0:
        returncode = session.wait(grace_period)
    else:
        returncode = session.poll()

    if returncode is None:
        logger.debug("pid %d survived %.3gs grace period", pid, grace_period)
    session.forceful_stop()

    if returncode is None:
        returncode = session.wait(REAP_TIMEOUT)
        if returncode is None:
            raise TerminateError(pid, "process did not exit after being killed")
    return returncode
