"""
Child subreaper support for running as a container's init process.

When enabled, orphaned descendants of the workload are re-parented to the
supervisor instead of PID 1 of the host namespace, and are collected after
the workload exits so they do not linger as zombies.
"""

import ctypes
import ctypes.util
import logging
import os
import sys

from .errors import RuntimeInitError

logger = logging.getLogger(__name__)

PR_SET_CHILD_SUBREAPER = 36


def enable_subreaper():
    """
    Mark this process as a child subreaper (Linux only).

    Raises:
        RuntimeInitError: on other platforms or if prctl fails.
    """
    if not sys.platform.startswith("linux"):
        raise RuntimeInitError(f"Process subreaper is not supported on {sys.platform}")

    libc = ctypes.CDLL(ctypes.util.find_library("c") or None, use_errno=True)
    if libc.prctl(PR_SET_CHILD_SUBREAPER, 1, 0, 0, 0) != 0:
        errno = ctypes.get_errno()
        raise RuntimeInitError(f"prctl(PR_SET_CHILD_SUBREAPER) failed: {os.strerror(errno)}")

    logger.info("Enabled process subreaper")


def reap_orphans() -> int:
    """Collect any exited children without blocking. Returns how many were reaped."""
    reaped = 0
    while True:
        try:
            pid, status = os.waitpid(-1, os.WNOHANG)
        except ChildProcessError:
            break
        if pid == 0:
            break
        reaped += 1
        logger.debug(f"Reaped orphaned process {pid} (status {status})")

    if reaped:
        logger.info(f"Reaped {reaped} orphaned process(es)")
    return reaped
