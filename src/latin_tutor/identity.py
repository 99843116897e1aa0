"""Owner identity for review data.

Store calls need the owner id, which only becomes available once sign-in has
completed. Callers wait a bounded time for it.
"""
import logging
import threading
import uuid

from latin_tutor.config import IDENTITY_WAIT_SECONDS
from latin_tutor.errors import IdentityTimeoutError
from latin_tutor.settings import get_setting, set_setting

logger = logging.getLogger(__name__)

OWNER_SETTING = "owner_id"


class LocalIdentity:
    def __init__(self):
        self._owner_id = None
        self._ready = threading.Event()

    def sign_in(self, owner_id: str) -> None:
        self._owner_id = owner_id
        self._ready.set()
        logger.debug("Signed in as %s", owner_id)

    def sign_out(self) -> None:
        self._ready.clear()
        self._owner_id = None

    @property
    def is_signed_in(self) -> bool:
        return self._ready.is_set()

    def current_owner_id(self, timeout: float = IDENTITY_WAIT_SECONDS) -> str:
        if not self._ready.wait(timeout):
            raise IdentityTimeoutError(f"No signed-in owner after {timeout:.1f}s")
        return self._owner_id


def load_local_identity(db_path: str) -> LocalIdentity:
    """Sign in as this machine's persistent local owner, creating one on first use."""
    owner_id = get_setting(db_path, OWNER_SETTING)
    if not owner_id:
        owner_id = uuid.uuid4().hex
        set_setting(db_path, OWNER_SETTING, owner_id)
        logger.info("Created local owner %s", owner_id)
    identity = LocalIdentity()
    identity.sign_in(owner_id)
    return identity
