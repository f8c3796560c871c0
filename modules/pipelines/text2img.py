"""Text-to-image service backed by the Replicate predictions API."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

import requests

from config.settings import AppConfig
from modules.errors import GenerationFailed

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("succeeded", "failed", "canceled")


@dataclass(frozen=True, slots=True)
class PromptRequest:
    """Input payload for one generation; only the prompt varies per call."""

    prompt: str
    go_fast: bool = True
    num_outputs: int = 1
    aspect_ratio: str = "1:1"
    output_format: str = "webp"
    output_quality: int = 80

    def to_input(self) -> dict[str, Any]:
        return asdict(self)


class Text2ImageService:
    """Facade around a single Replicate prediction."""

    def __init__(
        self,
        config: AppConfig,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.session = session or requests.Session()
        self._sleep = sleep

    def _endpoint(self) -> str:
        return f"{self.config.replicate_base_url}/models/{self.config.replicate_model}/predictions"

    def _headers(self, credential: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
            "Prefer": "wait",
        }

    def _decode(self, response: requests.Response) -> dict[str, Any]:
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("unexpected prediction payload")
        return data

    def _first_output(self, prediction: dict[str, Any]) -> str:
        output = prediction.get("output")
        if isinstance(output, list):
            output = output[0] if output else None
        if not isinstance(output, str) or not output:
            raise ValueError("prediction returned no image")
        return output

    def generate(self, prompt: str, credential: str) -> str:
        """Run one prediction and return the first image URL."""
        request = PromptRequest(prompt=prompt)
        headers = self._headers(credential)
        timeout = self.config.request_timeout
        started = time.monotonic()
        logger.info("Submitting prediction to %s: %.60s", self.config.replicate_model, prompt)

        try:
            prediction = self._decode(
                self.session.post(
                    self._endpoint(),
                    headers=headers,
                    json={"input": request.to_input()},
                    timeout=timeout,
                )
            )
            # Prefer: wait may return before the prediction finishes
            while prediction.get("status") not in TERMINAL_STATUSES:
                poll_url = (prediction.get("urls") or {}).get("get")
                if not poll_url:
                    raise ValueError("prediction is pending but has no polling URL")
                self._sleep(self.config.poll_interval)
                prediction = self._decode(self.session.get(poll_url, headers=headers, timeout=timeout))

            status = prediction.get("status")
            if status != "succeeded":
                raise RuntimeError(prediction.get("error") or f"prediction {status}")
            url = self._first_output(prediction)
        except (requests.RequestException, ValueError, RuntimeError) as exc:
            logger.error("Prediction failed after %.1fs: %s", time.monotonic() - started, exc)
            raise GenerationFailed(exc) from exc

        logger.info("Prediction succeeded in %.1fs", time.monotonic() - started)
        return url
