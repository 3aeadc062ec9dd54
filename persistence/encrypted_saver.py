import logging
import pickle
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Iterator, List, Optional, Sequence, Tuple

import psycopg
from psycopg.rows import dict_row
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import Checkpoint, CheckpointMetadata, CheckpointTuple, ChannelVersions
from langgraph.checkpoint.memory import InMemorySaver
from langgraph.checkpoint.postgres.aio import AsyncPostgresSaver

from config.postgres import PostgresConfig
from .crypto import CryptoUtils

logger = logging.getLogger(__name__)

DEFAULT_ENCRYPT_KEYS = ("password", "confirm", "rut")


def _is_encrypted(value: Any) -> bool:
    return isinstance(value, dict) and "__enc__" in value


class EncryptedCheckpointMixin:
    """
    Encrypts selected channel values before they reach the underlying saver.

    Channels are picked from the saver's own encrypt_keys plus any
    configurable.encrypt_keys on the call. Checkpoint channel_values and
    pending writes are both covered. Already-wrapped values pass through
    untouched, so sync entry points that delegate to async ones (or the
    reverse) never encrypt twice.
    """

    def __init__(
        self,
        *args: Any,
        crypto: CryptoUtils,
        encrypt_keys: Iterable[str] = DEFAULT_ENCRYPT_KEYS,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.crypto = crypto
        self.encrypt_keys = set(encrypt_keys)

    @staticmethod
    def _aad(config: RunnableConfig, channel: str) -> bytes:
        conf = config["configurable"]
        thread_id = conf["thread_id"]
        checkpoint_ns = conf.get("checkpoint_ns", "")
        return f"{thread_id}|{checkpoint_ns}|channel_values".encode("utf-8") + b"|" + channel.encode()

    def _keys_for(self, config: RunnableConfig) -> set:
        return self.encrypt_keys | set(config["configurable"].get("encrypt_keys", []))

    @staticmethod
    def _needs_encryption(channel: str, value: Any, keys: set) -> bool:
        if CryptoUtils.should_encrypt(channel, keys):
            return True
        # raw graph input (the __start__ channel) carries whole patches
        if channel.startswith("__") and isinstance(value, dict):
            return bool(keys & value.keys())
        return False

    def _encrypt_value(self, config: RunnableConfig, channel: str, value: Any) -> Any:
        if _is_encrypted(value):
            return value
        raw = pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
        enc = self.crypto.encrypt_bytes(raw, self._aad(config, channel))
        return {"__enc__": enc, "__fmt__": "pickle"}

    def _decrypt_value(self, config: RunnableConfig, channel: str, value: Any) -> Any:
        if not _is_encrypted(value):
            return value
        raw = self.crypto.decrypt_bytes(value["__enc__"], self._aad(config, channel))
        return pickle.loads(raw)

    def _encrypt_checkpoint(self, config: RunnableConfig, checkpoint: Checkpoint) -> Checkpoint:
        keys = self._keys_for(config)
        cp = dict(checkpoint)
        channel_values = cp.get("channel_values", {})

        new_cv = {}
        for k, v in channel_values.items():
            if self._needs_encryption(k, v, keys):
                new_cv[k] = self._encrypt_value(config, k, v)
            else:
                new_cv[k] = v

        cp["channel_values"] = new_cv
        return cp

    def _encrypt_writes(self, config: RunnableConfig, writes: Sequence[Tuple[str, Any]]) -> List[Tuple[str, Any]]:
        keys = self._keys_for(config)
        return [
            (
                channel,
                self._encrypt_value(config, channel, value)
                if self._needs_encryption(channel, value, keys)
                else value,
            )
            for channel, value in writes
        ]

    def _decrypt_tuple(self, t: Optional[CheckpointTuple]) -> Optional[CheckpointTuple]:
        if t is None:
            return None

        cp = dict(t.checkpoint)
        cv = cp.get("channel_values", {})
        if isinstance(cv, dict):
            cp["channel_values"] = {k: self._decrypt_value(t.config, k, v) for k, v in cv.items()}

        pending = t.pending_writes
        if pending:
            pending = [
                (task_id, channel, self._decrypt_value(t.config, channel, value))
                for task_id, channel, value in pending
            ]

        return t._replace(checkpoint=cp, pending_writes=pending)

    def put(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        cp = self._encrypt_checkpoint(config, checkpoint)
        return super().put(config, cp, metadata, new_versions)

    async def aput(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        cp = self._encrypt_checkpoint(config, checkpoint)
        return await super().aput(config, cp, metadata, new_versions)

    def put_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[Tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        super().put_writes(config, self._encrypt_writes(config, writes), task_id, task_path)

    async def aput_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[Tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        await super().aput_writes(config, self._encrypt_writes(config, writes), task_id, task_path)

    def get_tuple(self, config: RunnableConfig) -> Optional[CheckpointTuple]:
        return self._decrypt_tuple(super().get_tuple(config))

    async def aget_tuple(self, config: RunnableConfig) -> Optional[CheckpointTuple]:
        return self._decrypt_tuple(await super().aget_tuple(config))

    def list(self, config: Optional[RunnableConfig], **kwargs: Any) -> Iterator[CheckpointTuple]:
        for t in super().list(config, **kwargs):
            yield self._decrypt_tuple(t)

    async def alist(self, config: Optional[RunnableConfig], **kwargs: Any) -> AsyncIterator[CheckpointTuple]:
        async for t in super().alist(config, **kwargs):
            yield self._decrypt_tuple(t)


class EncryptedMemorySaver(EncryptedCheckpointMixin, InMemorySaver):
    pass


class EncryptedPostgresSaver(EncryptedCheckpointMixin, AsyncPostgresSaver):
    pass


@asynccontextmanager
async def open_checkpointer(
    crypto: CryptoUtils,
    pg: Optional[PostgresConfig] = None,
    encrypt_keys: Iterable[str] = DEFAULT_ENCRYPT_KEYS,
) -> AsyncIterator[EncryptedCheckpointMixin]:
    """
    Postgres-backed saver when a config is given, in-memory otherwise.
    """
    if pg is None:
        logger.info("Using in-memory wizard checkpoints")
        yield EncryptedMemorySaver(crypto=crypto, encrypt_keys=encrypt_keys)
        return

    conn = await psycopg.AsyncConnection.connect(
        pg.conninfo,
        autocommit=True,
        prepare_threshold=0,
        row_factory=dict_row,
    )
    try:
        saver = EncryptedPostgresSaver(conn, crypto=crypto, encrypt_keys=encrypt_keys)
        await saver.setup()
        logger.info("Using Postgres wizard checkpoints on %s:%s/%s", pg.host, pg.port, pg.dbname)
        yield saver
    finally:
        await conn.close()
