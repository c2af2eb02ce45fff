from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from pydantic import BaseModel


def _init_env():
    base = Path(__file__).resolve().parent
    for env_file in (base / ".env", base.parent / ".env"):
        if env_file.exists():
            load_dotenv(dotenv_path=str(env_file), override=False)
            return

_init_env()

from img2vid.config.config import config
from img2vid.services.base import setup_logger
from img2vid.services.errors import SessionBusyError, UnsupportedFileTypeError, ValidationError
from img2vid.ui.controller import SessionController, SessionRegistry
from img2vid.ui.state import Error, Generating, Idle, Success
from img2vid.ui.views import render
from img2vid.utils.logging_setup import log_context

logger = setup_logger(__name__)

SESSION_COOKIE = "session_id"
server_config = config.get("server", {})

app = FastAPI(title="Image to Video AI", version="0.1.0")

registry = SessionRegistry(timeout_sec=float(server_config.get("session_timeout_minutes", 60)) * 60)


class SessionStateResponse(BaseModel):
    session_id: str
    state: str
    prompt: Optional[str] = None
    has_image: bool = False
    progress: Optional[str] = None
    error: Optional[str] = None
    video_url: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str


def _controller(request: Request) -> SessionController:
    return registry.get(request.cookies.get(SESSION_COOKIE))


def _existing(request: Request) -> Optional[SessionController]:
    return registry.find(request.cookies.get(SESSION_COOKIE))


def _with_cookie(response: Response, controller: SessionController) -> Response:
    response.set_cookie(SESSION_COOKIE, controller.session_id, httponly=True, samesite="lax")
    return response


def _redirect_home(controller: SessionController) -> Response:
    return _with_cookie(RedirectResponse(url="/", status_code=303), controller)


async def _select_upload(controller: SessionController, image: Optional[UploadFile]) -> None:
    if image is None or not image.filename:
        return
    data = await image.read()
    controller.select_image(image.filename, image.content_type or "", data)


@app.get("/", response_class=HTMLResponse)
async def index(request: Request):
    controller = _existing(request)
    state = controller.state if controller else Idle()
    html = render(state, refresh_sec=int(server_config.get("refresh_sec", 3)))
    response = HTMLResponse(html)
    return _with_cookie(response, controller) if controller else response


@app.post("/image")
async def upload_image(
    request: Request,
    image: Optional[UploadFile] = File(None),
    prompt: str = Form(""),
):
    """Store the selected image (and any prompt typed so far) for preview."""
    controller = _controller(request)
    with log_context(session_id=controller.session_id):
        try:
            controller.set_prompt(prompt)
            await _select_upload(controller, image)
        except (UnsupportedFileTypeError, SessionBusyError) as e:
            logger.info(f"Upload rejected: {e}")
    return _redirect_home(controller)


@app.post("/generate")
async def generate(
    request: Request,
    background_tasks: BackgroundTasks,
    image: Optional[UploadFile] = File(None),
    prompt: str = Form(""),
):
    """
    Submit the session's image and prompt for video generation.

    The generation itself runs as a background task; the browser is redirected
    to `/`, which shows the Generating view until the session settles.
    """
    controller = _controller(request)
    with log_context(session_id=controller.session_id):
        try:
            controller.set_prompt(prompt)
            await _select_upload(controller, image)
            controller.submit()
        except (ValidationError, UnsupportedFileTypeError, SessionBusyError) as e:
            logger.info(f"Generate rejected: {e}")
            return _redirect_home(controller)

        background_tasks.add_task(controller.run)
    return _redirect_home(controller)


@app.post("/reset")
async def reset(request: Request):
    controller = _existing(request)
    if controller is None:
        return RedirectResponse(url="/", status_code=303)
    try:
        controller.reset()
    except SessionBusyError as e:
        logger.info(f"Reset rejected: {e}")
    return _redirect_home(controller)


@app.get("/state", response_model=SessionStateResponse)
async def session_state(request: Request, response: Response):
    controller = _existing(request)
    if controller is None:
        return SessionStateResponse(session_id="", state="idle", prompt="")
    state = controller.state
    body = SessionStateResponse(session_id=controller.session_id, state=controller.name)
    if isinstance(state, Idle):
        body.prompt = state.prompt
        body.has_image = state.image is not None
        body.error = state.error
    elif isinstance(state, Generating):
        body.prompt = state.prompt
        body.has_image = True
        body.progress = state.progress
    elif isinstance(state, Success):
        body.video_url = "/video"
    elif isinstance(state, Error):
        body.error = state.message
    _with_cookie(response, controller)
    return body


@app.get("/video")
async def video(request: Request):
    controller = _existing(request)
    state = controller.state if controller else None
    if not isinstance(state, Success):
        raise HTTPException(status_code=404, detail="No generated video for this session")
    return Response(content=state.video.data, media_type=state.video.mime_type)


@app.get("/health")
async def health():
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now().isoformat()
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=server_config.get("host", "0.0.0.0"),
        port=int(server_config.get("port", 8000)),
    )
