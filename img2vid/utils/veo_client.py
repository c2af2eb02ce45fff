import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

from img2vid.services.base import GeneratedVideo
from img2vid.services.errors import DownloadError, OperationStatusError, VideoGenerationError

logger = logging.getLogger(__name__)


@dataclass
class VideoOperation:
    name: str
    done: bool = False
    response: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "VideoOperation":
        err = data.get("error")
        if isinstance(err, dict):
            err = err.get("message") or str(err)
        return cls(
            name=data.get("name", ""),
            done=bool(data.get("done", False)),
            response=data.get("response") or {},
            error=err or None,
        )

    @property
    def video_uri(self) -> Optional[str]:
        """URI of the first generated video, if the service returned one."""
        body = self.response.get("generateVideoResponse") or {}
        samples = body.get("generatedSamples") or self.response.get("generatedVideos") or []
        if not samples:
            return None
        video = samples[0].get("video") or {}
        return video.get("uri")


class VeoClient:
    def __init__(
        self,
        api_key: str,
        model_id: str = "veo-2.0-generate-001",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_sec: float = 60,
        download_timeout_sec: float = 300,
    ):
        self.api_key = api_key
        self.model_id = model_id
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.download_timeout_sec = download_timeout_sec

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

    def submit(
        self,
        prompt: str,
        image_base64: str,
        mime_type: str,
        number_of_videos: int = 1,
    ) -> VideoOperation:
        url = f"{self.base_url}/models/{self.model_id}:predictLongRunning"
        payload = {
            "instances": [{
                "prompt": prompt,
                "image": {"bytesBase64Encoded": image_base64, "mimeType": mime_type},
            }],
            "parameters": {"sampleCount": number_of_videos},
        }
        resp = requests.post(url, headers=self._headers(), json=payload, timeout=self.timeout_sec)
        if resp.status_code != 200:
            raise VideoGenerationError(f"Submit failed: {resp.status_code} {resp.text}")
        operation = VideoOperation.from_payload(resp.json())
        if not operation.name:
            raise VideoGenerationError(f"No operation name in submit response: {resp.text}")
        return operation

    def get_operation(self, operation: VideoOperation) -> VideoOperation:
        url = f"{self.base_url}/{operation.name}"
        resp = requests.get(url, headers=self._headers(), timeout=self.timeout_sec)
        if resp.status_code != 200:
            raise OperationStatusError(f"Poll failed: {resp.status_code} {resp.text}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise OperationStatusError(f"Poll returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise OperationStatusError(f"Poll returned {type(data).__name__}, expected an object")
        data.setdefault("name", operation.name)
        return VideoOperation.from_payload(data)

    def wait_for_operation(
        self,
        operation: VideoOperation,
        messages,
        on_progress: Callable[[str], None],
        poll_interval_sec: float = 10,
    ) -> VideoOperation:
        # No deadline: keeps polling until the service reports done.
        index = 0
        while not operation.done:
            on_progress(messages[index % len(messages)])
            index += 1
            time.sleep(poll_interval_sec)
            try:
                operation = self.get_operation(operation)
            except (requests.RequestException, OperationStatusError) as exc:
                logger.warning(f"Polling failed for {operation.name}, retrying: {exc}")
                continue
            logger.debug(f"Operation {operation.name}: done={operation.done} (poll {index})")
        return operation

    def download(self, uri: str) -> GeneratedVideo:
        resp = requests.get(uri, params={"key": self.api_key}, timeout=self.download_timeout_sec)
        if not resp.ok:
            status_text = resp.reason or str(resp.status_code)
            raise DownloadError(
                f"Failed to download video: {status_text}",
                status_code=resp.status_code,
                status_text=status_text,
            )
        mime_type = resp.headers.get("Content-Type", "video/mp4").split(";")[0].strip() or "video/mp4"
        return GeneratedVideo(data=resp.content, mime_type=mime_type)
