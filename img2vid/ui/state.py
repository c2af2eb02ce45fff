"""
Per-session UI state.

Exactly one variant is active at a time, and each variant only carries the
fields its view needs:
- Idle: image/prompt being edited, plus inline validation feedback
- Generating: the submitted request and the latest progress message
- Success: the downloaded video
- Error: the failure message
"""

from dataclasses import dataclass
from typing import Optional, Union

from img2vid.services.base import GeneratedVideo
from img2vid.services.video_gen import file_to_data_uri


@dataclass(frozen=True)
class SelectedImage:
    filename: str
    content_type: str
    data: bytes

    @property
    def preview_uri(self) -> str:
        return file_to_data_uri(self.data, self.content_type)


@dataclass(frozen=True)
class Idle:
    image: Optional[SelectedImage] = None
    prompt: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class Generating:
    image: SelectedImage
    prompt: str
    job_token: str
    progress: str = ""


@dataclass(frozen=True)
class Success:
    video: GeneratedVideo


@dataclass(frozen=True)
class Error:
    message: str


SessionState = Union[Idle, Generating, Success, Error]


def state_name(state: SessionState) -> str:
    return type(state).__name__.lower()
