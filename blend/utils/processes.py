"""Process registry — child processes that must not outlive blend.

Every process blend starts, git included, is registered here and killed when
the interpreter exits or blend is terminated by SIGTERM or SIGHUP, so a crash
or forced exit leaves no orphans behind.
"""

from __future__ import annotations

import atexit
import logging
import signal
import subprocess

logger = logging.getLogger(__name__)

_children: list[subprocess.Popen] = []


def spawn(args, **kwargs) -> subprocess.Popen:
    """Start a process and track it until it is released."""
    return track(subprocess.Popen(args, **kwargs))


def track(proc: subprocess.Popen) -> subprocess.Popen:
    """Track a process started elsewhere."""
    _children.append(proc)
    return proc


def release(proc: subprocess.Popen) -> None:
    """Stop tracking a process that has finished."""
    if proc in _children:
        _children.remove(proc)


def running() -> list[subprocess.Popen]:
    return [p for p in _children if p.poll() is None]


def terminate_all() -> None:
    """Kill every tracked process that is still running."""
    for proc in running():
        logger.debug("Killing orphaned child process %s", proc.pid)
        proc.kill()
        proc.wait()
    _children.clear()


def _terminate_and_exit(signum, frame) -> None:
    terminate_all()
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    """Kill tracked children on SIGTERM and SIGHUP, then exit.

    Handlers someone else installed are left alone.
    """
    for name in ("SIGTERM", "SIGHUP"):
        signum = getattr(signal, name, None)
        if signum is not None and signal.getsignal(signum) is signal.SIG_DFL:
            signal.signal(signum, _terminate_and_exit)


atexit.register(terminate_all)
