"""Generation workflow controller."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple

from config.settings import AppConfig
from modules.errors import GalleryAppError, GenerationFailed, InvalidPosition, PersistenceFailed
from modules.pipelines.text2img import Text2ImageService
from modules.services.credential_service import CredentialStore
from modules.services.history_service import GalleryStore, GenerationRecord
from modules.services.storage_service import StorageService
from modules.storage.local_storage import LocalStorage
from modules.workflow.state import (
    Action,
    AppendRecord,
    DeleteRecord,
    GalleryLoaded,
    GenerationErrored,
    GenerationSucceeded,
    InvokeInference,
    Phase,
    RemoveRecord,
    SubmitPrompt,
    Transition,
    WorkflowState,
    reduce,
)

logger = logging.getLogger(__name__)


class GenerationController:
    """Run submissions through the state machine and execute its effects."""

    def __init__(
        self,
        gallery: GalleryStore,
        credentials: CredentialStore,
        client: Text2ImageService,
        storage: Optional[StorageService] = None,
    ) -> None:
        self.gallery = gallery
        self.credentials = credentials
        self.client = client
        self.storage = storage
        self._state = WorkflowState()

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def records(self) -> Tuple[GenerationRecord, ...]:
        return self._state.records

    @property
    def last_image_url(self) -> Optional[str]:
        return self._state.last_image_url

    @property
    def is_submitting(self) -> bool:
        return self._state.phase is Phase.SUBMITTING

    def initialize(self) -> WorkflowState:
        """Load the credential and the persisted gallery."""
        self.credentials.load()
        self._dispatch(GalleryLoaded(tuple(self.gallery.load())))
        return self._state

    def _dispatch(self, action: Action) -> Transition:
        transition = reduce(self._state, action)
        self._state = transition.state
        return transition

    async def submit(self, prompt: str) -> Optional[GenerationRecord]:
        """Generate an image for ``prompt`` and append it to the gallery.

        Returns None when another submission is already in flight.
        """
        transition = self._dispatch(SubmitPrompt(prompt, self.credentials.get()))
        if transition.error is not None:
            logger.info("Submission rejected: %s", transition.error)
            raise transition.error
        effect = transition.effect
        if not isinstance(effect, InvokeInference):
            logger.info("Generation already in progress, ignoring submission")
            return None

        try:
            url = await asyncio.to_thread(self.client.generate, effect.prompt, effect.credential)
        except GenerationFailed as exc:
            self._dispatch(GenerationErrored(exc))
            raise
        except Exception as exc:
            error = GenerationFailed(exc)
            self._dispatch(GenerationErrored(error))
            raise error from exc
        except asyncio.CancelledError as exc:
            # 取消后工作线程仍会跑完，但结果不再入库
            self._dispatch(GenerationErrored(GenerationFailed(exc)))
            raise

        succeeded = reduce(self._state, GenerationSucceeded(url))
        effect = succeeded.effect
        if not isinstance(effect, AppendRecord):
            self._state = succeeded.state
            return None
        # 先写盘再提交状态，失败时不显示没有记录的图像
        try:
            records = self.gallery.append(effect.record)
        except OSError as exc:
            logger.error("Failed to persist gallery: %s", exc)
            error = PersistenceFailed(exc)
            self._dispatch(GenerationErrored(error))
            raise error from exc
        self._state = succeeded.state
        self._dispatch(GalleryLoaded(tuple(records)))
        logger.info("Stored gallery record #%d", len(records) - 1)
        return effect.record

    def delete_record(self, position: int) -> Tuple[GenerationRecord, ...]:
        """Remove the record at ``position`` from the gallery."""
        transition = self._dispatch(DeleteRecord(position))
        if transition.error is not None:
            raise transition.error
        effect = transition.effect
        assert isinstance(effect, RemoveRecord)
        try:
            records = self.gallery.remove_at(effect.position)
        except OSError as exc:
            logger.error("Failed to persist gallery: %s", exc)
            raise PersistenceFailed(exc) from exc
        self._dispatch(GalleryLoaded(tuple(records)))
        logger.info("Deleted gallery record #%d", position)
        return self._state.records

    def set_credential(self, value: Optional[str]) -> None:
        try:
            self.credentials.set(value)
        except OSError as exc:
            logger.error("Failed to persist API key: %s", exc)
            raise PersistenceFailed(exc) from exc

    def download_url(self, url: str) -> Path:
        """Save an image URL locally; gallery state is not touched."""
        if self.storage is None:
            raise GalleryAppError("Download directory is not configured")
        return self.storage.save_image(url)

    def download_record(self, position: int) -> Path:
        records = self._state.records
        if position < 0 or position >= len(records):
            raise InvalidPosition(position, len(records))
        return self.download_url(records[position].url)


def build_controller(config: AppConfig) -> GenerationController:
    """Wire the stores and the inference client and load persisted state."""
    storage = LocalStorage(config.data_dir)
    controller = GenerationController(
        gallery=GalleryStore(storage, config.gallery_key),
        credentials=CredentialStore(storage, config.credential_key, default=config.default_api_key),
        client=Text2ImageService(config),
        storage=StorageService(config.download_dir),
    )
    controller.initialize()
    return controller
