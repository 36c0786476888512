"""Backend selection."""
import logging

from prtracker.config import Config, config
from prtracker.store.base import RecordStore
from prtracker.store.local import LocalRecordStore
from prtracker.store.remote import RemoteRecordStore

logger = logging.getLogger(__name__)


def build_store(cfg: Config = config) -> RecordStore:
    """Return the remote store when an endpoint is configured, else the local one."""
    local = LocalRecordStore(cfg=cfg)
    if cfg.use_remote:
        logger.info(f"Using remote store at {cfg.SCRIPT_URL}")
        return RemoteRecordStore(cfg=cfg, fallback=local)
    logger.info(f"Using local store at {local.path}")
    return local
