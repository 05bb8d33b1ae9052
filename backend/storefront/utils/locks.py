import os
import re
import tempfile
from contextlib import contextmanager
from typing import Iterator

from filelock import FileLock, Timeout

from storefront.config import settings

LOCKS_DIR = os.path.join(tempfile.gettempdir(), "storefront_locks")


class LockBusy(Exception):
    pass


def _lock_path(name: str) -> str:
    os.makedirs(LOCKS_DIR, exist_ok=True)
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", name)
    return os.path.join(LOCKS_DIR, f"{safe}.lock")


@contextmanager
def cart_lock(cart_id: str, timeout: float = None) -> Iterator[None]:
    """
    Single-writer lock for one cart. Every path that turns a cart into an
    order holds it from the cart lookup until the transaction commits.
    """
    if timeout is None:
        timeout = settings.CART_LOCK_TIMEOUT_SECONDS
    lock = FileLock(_lock_path(f"cart_{cart_id}"))
    try:
        with lock.acquire(timeout=timeout):
            yield
    except Timeout:
        raise LockBusy(f"Cart {cart_id} is being checked out; try again")


def discard_cart_lock(cart_id: str):
    """Remove the lock file of a cart that no longer exists."""
    try:
        os.remove(_lock_path(f"cart_{cart_id}"))
    except FileNotFoundError:
        pass
