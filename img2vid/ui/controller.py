from __future__ import annotations

import re
import threading
import time
import uuid
from typing import Callable, Dict, Optional

from img2vid.services.base import GeneratedVideo, setup_logger
from img2vid.services.errors import SessionBusyError, UnsupportedFileTypeError, ValidationError
from img2vid.services.video_gen import file_to_base64, generate_video_from_image
from img2vid.ui.state import Error, Generating, Idle, SelectedImage, SessionState, Success, state_name
from img2vid.utils.logging_setup import log_context

logger = setup_logger(__name__)

UNSUPPORTED_FILE_MESSAGE = "Please upload a valid image file (e.g., PNG, JPG, WEBP)."
MISSING_INPUT_MESSAGE = "Please upload an image and provide a prompt."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during video generation."
PREPARING_MESSAGE = "Preparing your image..."

# type/subtype token, e.g. image/png or image/svg+xml
_IMAGE_MIME_RE = re.compile(r"^image/[A-Za-z0-9][A-Za-z0-9!#$&^_.+-]*$")

GenerateFn = Callable[[str, str, str, Callable[[str], None]], GeneratedVideo]


def normalize_image_type(content_type: Optional[str]) -> Optional[str]:
    """Return the bare image mime type, or None if it is not a well-formed image type."""
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    return mime if _IMAGE_MIME_RE.match(mime) else None


class SessionController:
    """
    Drives one browser session through Idle -> Generating -> Success/Error -> Idle.

    `run()` blocks for the whole generation and is meant to be called from a
    worker thread. While it runs the session stays in Generating: edits,
    submits and resets are refused until the job settles.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        generate: Optional[GenerateFn] = None,
        encode: Optional[Callable[[bytes], str]] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self._generate = generate
        self._encode = encode
        self._lock = threading.Lock()
        self.state: SessionState = Idle()

    @property
    def name(self) -> str:
        return state_name(self.state)

    def _require_idle(self) -> Idle:
        state = self.state
        if not isinstance(state, Idle):
            raise SessionBusyError(f"Cannot edit the session while it is {state_name(state)}.")
        return state

    def select_image(self, filename: str, content_type: str, data: bytes) -> SessionState:
        with self._lock:
            state = self._require_idle()
            mime_type = normalize_image_type(content_type)
            if mime_type is None:
                self.state = Idle(image=None, prompt=state.prompt, error=UNSUPPORTED_FILE_MESSAGE)
                logger.info(f"Rejected upload {filename!r} with type {content_type!r}")
                raise UnsupportedFileTypeError(UNSUPPORTED_FILE_MESSAGE)
            image = SelectedImage(filename=filename, content_type=mime_type, data=data)
            self.state = Idle(image=image, prompt=state.prompt, error=None)
            logger.info(f"Selected image {filename!r} ({mime_type}, {len(data)} bytes)")
            return self.state

    def set_prompt(self, prompt: str) -> SessionState:
        with self._lock:
            state = self._require_idle()
            self.state = Idle(image=state.image, prompt=prompt or "", error=state.error)
            return self.state

    def submit(self) -> Generating:
        """Validate the Idle inputs and move to Generating."""
        with self._lock:
            state = self._require_idle()
            if state.image is None or not state.prompt:
                self.state = Idle(image=state.image, prompt=state.prompt, error=MISSING_INPUT_MESSAGE)
                raise ValidationError(MISSING_INPUT_MESSAGE)
            self.state = Generating(
                image=state.image,
                prompt=state.prompt,
                job_token=uuid.uuid4().hex,
                progress=PREPARING_MESSAGE,
            )
            logger.info(f"Session {self.session_id} submitted prompt {state.prompt[:50]!r}")
            return self.state

    def run(self) -> SessionState:
        state = self.state
        if not isinstance(state, Generating):
            return state

        token = state.job_token
        encode = self._encode or file_to_base64
        generate = self._generate or generate_video_from_image

        with log_context(session_id=self.session_id, job=token[:8]):
            try:
                encoded = encode(state.image.data)
                video = generate(
                    encoded,
                    state.image.content_type,
                    state.prompt,
                    lambda message: self._on_progress(token, message),
                )
            except Exception as e:
                logger.error(f"Video generation failed: {e}")
                return self._finish(token, Error(message=str(e) or UNKNOWN_ERROR_MESSAGE))
            logger.info(f"Video generation succeeded ({video.size} bytes)")
            return self._finish(token, Success(video=video))

    def generate(self) -> SessionState:
        self.submit()
        return self.run()

    def reset(self) -> SessionState:
        """Success/Error/Idle -> Idle. Refused while a job is outstanding."""
        with self._lock:
            if isinstance(self.state, Generating):
                raise SessionBusyError("A video is still being generated for this session.")
            self.state = Idle()
            return self.state

    def _is_current(self, token: str) -> bool:
        state = self.state
        return isinstance(state, Generating) and state.job_token == token

    def _on_progress(self, token: str, message: str) -> None:
        with self._lock:
            if self._is_current(token):
                state = self.state
                self.state = Generating(
                    image=state.image,
                    prompt=state.prompt,
                    job_token=token,
                    progress=message,
                )

    def _finish(self, token: str, final: SessionState) -> SessionState:
        with self._lock:
            if self._is_current(token):
                self.state = final
            return self.state


class SessionRegistry:
    """
    In-memory map of session id -> controller.

    Sessions idle for longer than `timeout_sec` are dropped, except while a
    generation is running. Ids are always minted here; an unknown cookie value
    never names a new session.
    """

    def __init__(
        self,
        factory: Callable[[str], SessionController] = SessionController,
        timeout_sec: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self.timeout_sec = timeout_sec
        self._clock = clock
        self._sessions: Dict[str, SessionController] = {}
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _purge(self, now: float) -> None:
        for session_id, seen in list(self._last_seen.items()):
            if now - seen <= self.timeout_sec:
                continue
            if isinstance(self._sessions[session_id].state, Generating):
                continue
            del self._sessions[session_id]
            del self._last_seen[session_id]
            logger.info(f"Expired session {session_id}")

    def find(self, session_id: Optional[str]) -> Optional[SessionController]:
        """Return the live session for `session_id` without creating one."""
        with self._lock:
            now = self._clock()
            self._purge(now)
            controller = self._sessions.get(session_id) if session_id else None
            if controller is not None:
                self._last_seen[session_id] = now
            return controller

    def get(self, session_id: Optional[str]) -> SessionController:
        """Return the live session for `session_id`, or a newly stored one."""
        controller = self.find(session_id)
        if controller is not None:
            return controller
        with self._lock:
            controller = self._factory(str(uuid.uuid4()))
            self._sessions[controller.session_id] = controller
            self._last_seen[controller.session_id] = self._clock()
            return controller

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
