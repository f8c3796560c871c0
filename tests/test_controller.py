"""GenerationController tests with stub inference and download services."""

from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path
from typing import Optional

import pytest

from config.settings import AppConfig
from modules.errors import (
    EmptyPrompt,
    GalleryAppError,
    GenerationFailed,
    InvalidPosition,
    MissingCredential,
    PersistenceFailed,
)
from modules.services.credential_service import CredentialStore
from modules.services.history_service import GalleryStore, GenerationRecord
from modules.storage.local_storage import LocalStorage
from modules.workflow import controller as controller_module
from modules.workflow.controller import GenerationController


class DummyText2ImageService:
    """Return queued URLs or raise queued errors."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls: list[tuple[str, str]] = []

    def generate(self, prompt: str, credential: str) -> str:
        self.calls.append((prompt, credential))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class ReadOnlyLocalStorage(LocalStorage):
    """Local storage whose writes fail once ``read_only`` is set."""

    read_only = False

    def set_item(self, key: str, value: str) -> None:
        if self.read_only:
            raise OSError("disk full")
        super().set_item(key, value)


class DummyStorageService:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.saved: list[str] = []

    def save_image(self, url: str, filename: Optional[str] = None) -> Path:
        self.saved.append(url)
        return self.root / "generated_image.webp"


def build_controller(tmp_path, client, api_key: str = "key", storage=None, local=None) -> GenerationController:
    local = local or LocalStorage(tmp_path)
    controller = GenerationController(
        gallery=GalleryStore(local, "gallery.json"),
        credentials=CredentialStore(local, "api_key", default=api_key),
        client=client,
        storage=storage,
    )
    controller.initialize()
    return controller


def test_concrete_scenario(tmp_path):
    client = DummyText2ImageService("img://1", "img://2")
    controller = build_controller(tmp_path, client)

    asyncio.run(controller.submit("a red fox"))
    assert controller.records == (GenerationRecord("a red fox", "img://1"),)

    with pytest.raises(EmptyPrompt):
        asyncio.run(controller.submit(""))
    assert len(controller.records) == 1

    asyncio.run(controller.submit("a blue owl"))
    assert controller.records == (
        GenerationRecord("a red fox", "img://1"),
        GenerationRecord("a blue owl", "img://2"),
    )

    controller.delete_record(0)
    assert controller.records == (GenerationRecord("a blue owl", "img://2"),)

    with pytest.raises(InvalidPosition):
        controller.delete_record(5)
    assert controller.records == (GenerationRecord("a blue owl", "img://2"),)
    assert len(client.calls) == 2


def test_submit_updates_last_image_and_persists(tmp_path):
    controller = build_controller(tmp_path, DummyText2ImageService("img://1"))

    record = asyncio.run(controller.submit("a red fox"))

    assert record == GenerationRecord("a red fox", "img://1")
    assert controller.last_image_url == "img://1"
    assert not controller.is_submitting
    reloaded = GalleryStore(LocalStorage(tmp_path), "gallery.json").load()
    assert reloaded == [record]


def test_prompt_is_stored_unmodified(tmp_path):
    prompt = "  a very long prompt " * 20
    controller = build_controller(tmp_path, DummyText2ImageService("img://1"))

    asyncio.run(controller.submit(prompt))

    assert controller.records[-1].prompt == prompt


@pytest.mark.parametrize("prompt", ["", "   "])
def test_blank_prompt_never_calls_client(tmp_path, prompt):
    client = DummyText2ImageService("img://1")
    controller = build_controller(tmp_path, client)

    with pytest.raises(EmptyPrompt):
        asyncio.run(controller.submit(prompt))

    assert client.calls == []
    assert controller.records == ()


def test_missing_credential_never_calls_client(tmp_path):
    client = DummyText2ImageService("img://1")
    controller = build_controller(tmp_path, client, api_key="")

    with pytest.raises(MissingCredential):
        asyncio.run(controller.submit("a red fox"))

    assert client.calls == []


def test_failure_leaves_state_untouched_and_allows_retry(tmp_path):
    client = DummyText2ImageService(GenerationFailed(RuntimeError("401")), "img://2")
    controller = build_controller(tmp_path, client)

    with pytest.raises(GenerationFailed):
        asyncio.run(controller.submit("a blue owl"))

    assert controller.records == ()
    assert controller.last_image_url is None
    assert not controller.is_submitting

    asyncio.run(controller.submit("a blue owl"))
    assert controller.records == (GenerationRecord("a blue owl", "img://2"),)


def test_unexpected_client_error_is_wrapped(tmp_path):
    controller = build_controller(tmp_path, DummyText2ImageService(KeyError("output")))

    with pytest.raises(GenerationFailed) as excinfo:
        asyncio.run(controller.submit("a red fox"))

    assert isinstance(excinfo.value.cause, KeyError)
    assert not controller.is_submitting


def test_second_submit_while_in_flight_is_ignored(tmp_path):
    class SlowService(DummyText2ImageService):
        def generate(self, prompt: str, credential: str) -> str:
            time.sleep(0.05)
            return super().generate(prompt, credential)

    client = SlowService("img://1", "img://2")
    controller = build_controller(tmp_path, client)

    async def run_both():
        first = asyncio.create_task(controller.submit("first"))
        await asyncio.sleep(0)
        assert controller.is_submitting
        second = await controller.submit("second")
        return await first, second

    first, second = asyncio.run(run_both())

    assert first == GenerationRecord("first", "img://1")
    assert second is None
    assert client.calls == [("first", "key")]
    assert len(controller.records) == 1


def test_set_credential_is_used_for_next_submit(tmp_path):
    client = DummyText2ImageService("img://1")
    controller = build_controller(tmp_path, client, api_key="")

    controller.set_credential("fresh-key")
    asyncio.run(controller.submit("a red fox"))

    assert client.calls == [("a red fox", "fresh-key")]


def test_initialize_restores_previous_session(tmp_path):
    first = build_controller(tmp_path, DummyText2ImageService("img://1"))
    asyncio.run(first.submit("a red fox"))
    first.set_credential("saved-key")

    second = build_controller(tmp_path, DummyText2ImageService(), api_key="env-key")

    assert second.records == first.records
    assert second.credentials.get() == "saved-key"
    assert second.last_image_url is None


def test_download_record_passes_url_through(tmp_path):
    storage = DummyStorageService(tmp_path)
    controller = build_controller(tmp_path, DummyText2ImageService("img://1"), storage=storage)
    asyncio.run(controller.submit("a red fox"))

    path = controller.download_record(0)

    assert path.name == "generated_image.webp"
    assert storage.saved == ["img://1"]
    assert len(controller.records) == 1


def test_download_record_out_of_range(tmp_path):
    controller = build_controller(tmp_path, DummyText2ImageService(), storage=DummyStorageService(tmp_path))

    with pytest.raises(InvalidPosition):
        controller.download_record(0)


def test_download_without_storage_configured(tmp_path):
    controller = build_controller(tmp_path, DummyText2ImageService())

    with pytest.raises(GalleryAppError):
        controller.download_url("img://1")


def test_cancelled_submit_returns_to_idle(tmp_path):
    class BlockingService:
        def __init__(self) -> None:
            self.release = threading.Event()
            self.calls: list[str] = []

        def generate(self, prompt: str, credential: str) -> str:
            self.calls.append(prompt)
            if prompt == "first":
                self.release.wait(timeout=5)
            return f"img://{prompt}"

    client = BlockingService()
    controller = build_controller(tmp_path, client)

    async def cancel_then_retry():
        task = asyncio.create_task(controller.submit("first"))
        await asyncio.sleep(0)
        assert controller.is_submitting
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not controller.is_submitting
        client.release.set()
        return await controller.submit("second")

    record = asyncio.run(cancel_then_retry())

    assert record == GenerationRecord("second", "img://second")
    assert sorted(client.calls) == ["first", "second"]
    assert controller.records == (record,)
    assert controller.last_image_url == "img://second"


def test_gallery_write_failure_keeps_previous_image(tmp_path):
    local = ReadOnlyLocalStorage(tmp_path)
    controller = build_controller(tmp_path, DummyText2ImageService("img://1", "img://2"), local=local)
    asyncio.run(controller.submit("a red fox"))

    local.read_only = True
    with pytest.raises(PersistenceFailed) as excinfo:
        asyncio.run(controller.submit("a blue owl"))

    assert isinstance(excinfo.value.cause, OSError)
    assert controller.last_image_url == "img://1"
    assert controller.records == (GenerationRecord("a red fox", "img://1"),)
    assert not controller.is_submitting
    assert GalleryStore(LocalStorage(tmp_path), "gallery.json").load() == list(controller.records)


def test_delete_write_failure_keeps_record(tmp_path):
    local = ReadOnlyLocalStorage(tmp_path)
    controller = build_controller(tmp_path, DummyText2ImageService("img://1"), local=local)
    asyncio.run(controller.submit("a red fox"))

    local.read_only = True
    with pytest.raises(PersistenceFailed):
        controller.delete_record(0)

    assert controller.records == (GenerationRecord("a red fox", "img://1"),)


def test_credential_write_failure_keeps_previous_key(tmp_path):
    local = ReadOnlyLocalStorage(tmp_path)
    controller = build_controller(tmp_path, DummyText2ImageService(), api_key="old-key", local=local)

    local.read_only = True
    with pytest.raises(PersistenceFailed):
        controller.set_credential("new-key")

    assert controller.credentials.get() == "old-key"


def test_build_controller_from_config(tmp_path):
    config = AppConfig(
        data_dir=tmp_path / "data",
        download_dir=tmp_path / "downloads",
        default_api_key="env-key",
    )

    controller = controller_module.build_controller(config)

    assert controller.credentials.get() == "env-key"
    assert controller.records == ()
    assert controller.last_image_url is None
    assert controller.storage is not None
