import os

from .config import LOCK_PATH
from .errors import Contention, SetupFailure


class LockGuard:
    """Advisory host-wide lock: a marker file holding the owner's PID.

    The lock is cooperative. A marker left behind by a crashed process is
    never reclaimed automatically; the operator removes it by hand.
    """

    def __init__(self, path=LOCK_PATH, pid=None):
        self.path = path
        self.pid = os.getpid() if pid is None else int(pid)
        self.held = False

    def owner(self):
        try:
            with open(self.path, "r") as f:
                text = f.read().strip()
        except FileNotFoundError:
            return None
        try:
            return int(text)
        except ValueError:
            return text or "unknown"

    def acquire(self) -> None:
        try:
            # O_EXCL so two instances starting together cannot both win
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError:
            raise Contention(self.owner(), self.path) from None
        except OSError as exc:
            raise SetupFailure(f"cannot create lock {self.path}: {exc.strerror}") from exc
        self.held = True
        try:
            with os.fdopen(fd, "w") as f:
                f.write(str(self.pid))
        except OSError as exc:
            self.release()
            raise SetupFailure(f"cannot write lock {self.path}: {exc.strerror or exc}") from exc

    def release(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        self.held = False

    def release_if_held(self) -> None:
        # teardown step; never removes a marker another process created
        if self.held:
            self.release()
