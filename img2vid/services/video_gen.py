import base64
import os
from typing import Callable, Optional

from img2vid.config.config import config
from img2vid.services.base import GeneratedVideo, setup_logger
from img2vid.services.errors import EncodingError, MissingCredentialError, MissingResultError
from img2vid.utils.veo_client import VeoClient

video_gen_config = config.get("video_gen", {})

logger = setup_logger(__name__)
logger.info(f"Loaded video_gen_config: {video_gen_config}")

PROGRESS_MESSAGES = (
    "Warming up the AI generators...",
    "Analyzing image composition...",
    "Dreaming up video frames...",
    "Stitching scenes together...",
    "Applying cinematic effects...",
    "Rendering the final cut...",
    "Almost there, adding final touches...",
)


def _get_api_key() -> str:
    """API keys must come from environment variables (.env)."""
    key = os.getenv("API_KEY") or ""
    if not key:
        raise MissingCredentialError("API key not found. Please ensure the API_KEY environment variable is set.")
    return key


def _read_bytes(source) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    try:
        if isinstance(source, (str, os.PathLike)):
            with open(source, "rb") as f:
                data = f.read()
        else:
            if hasattr(source, "seek"):
                source.seek(0)
            data = source.read()
    except (OSError, ValueError) as exc:
        raise EncodingError(f"Failed to read file: {exc}") from exc
    if not isinstance(data, (bytes, bytearray)):
        raise EncodingError("File reader did not return binary content.")
    return bytes(data)


def file_to_data_uri(source, mime_type: str = "application/octet-stream") -> str:
    """Read `source` (path, bytes or binary file object) into a base64 data URI."""
    payload = base64.b64encode(_read_bytes(source)).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def file_to_base64(source) -> str:
    """
    Encode the full content of `source` as base64, without the data URI prefix.

    Args:
        source: A filesystem path, raw bytes, or a binary file-like object.

    Returns:
        str: The base64 payload.

    Raises:
        EncodingError: If the file cannot be read or does not yield bytes.
    """
    return file_to_data_uri(source).split(",", 1)[1]


def generate_video_from_image(
    base64_image: str,
    mime_type: str,
    prompt: str,
    on_progress: Callable[[str], None],
    poll_interval_sec: Optional[float] = None,
) -> GeneratedVideo:
    """
    Generates a short video from an image and a text prompt with Veo.

    Submits a long-running generation, polls it until done (calling
    `on_progress` with a rotating status message before every poll) and
    downloads the resulting video.

    Args:
        base64_image (str): Image payload as returned by `file_to_base64`.
        mime_type (str): Image mime type, e.g. "image/png".
        prompt (str): Description of the video to generate.
        on_progress (Callable[[str], None]): Receives human-readable status strings.
        poll_interval_sec (float): Seconds between status checks; defaults to config.

    Returns:
        GeneratedVideo: The downloaded video bytes and content type.

    Raises:
        MissingCredentialError: API_KEY is not set. No request is made.
        MissingResultError: The finished operation has no video reference.
        DownloadError: The video could not be fetched.
    """
    api_key = _get_api_key()
    if poll_interval_sec is None:
        poll_interval_sec = float(video_gen_config.get("poll_interval_sec", 10))

    client = VeoClient(
        api_key,
        model_id=video_gen_config.get("model_id", "veo-2.0-generate-001"),
        base_url=video_gen_config.get("base_url", "https://generativelanguage.googleapis.com/v1beta"),
        timeout_sec=video_gen_config.get("request_timeout_sec", 60),
        download_timeout_sec=video_gen_config.get("download_timeout_sec", 300),
    )

    logger.info(f"Initializing video generation: model={client.model_id}, prompt={prompt[:50]!r}")
    operation = client.submit(
        prompt,
        base64_image,
        mime_type,
        number_of_videos=int(video_gen_config.get("number_of_videos", 1)),
    )
    logger.info(f"Video generation started: {operation.name}")

    completed = client.wait_for_operation(
        operation,
        PROGRESS_MESSAGES,
        on_progress,
        poll_interval_sec=poll_interval_sec,
    )

    download_link = completed.video_uri
    if not download_link:
        logger.error(f"API response without video: {completed.response} (error: {completed.error})")
        message = "Video generation failed or did not return a valid download link."
        if completed.error:
            message = f"{message} {completed.error}"
        raise MissingResultError(message)

    logger.info(f"Downloading generated video: {download_link}")
    video = client.download(download_link)
    logger.info(f"Downloaded {video.size} bytes ({video.mime_type})")
    return video
