"""HTML rendering for the four session views."""

from html import escape

from img2vid.ui.state import Error, Generating, Idle, SessionState, Success

PAGE_TITLE = "Image to Video AI"


def _page(body: str, refresh_sec: int = 0) -> str:
    refresh = f'<meta http-equiv="refresh" content="{refresh_sec}">' if refresh_sec else ""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
{refresh}
<title>{PAGE_TITLE}</title>
</head>
<body>
<header>
<h1>{PAGE_TITLE}</h1>
<p>Bring your images to life with the power of generative AI.</p>
</header>
<main>
{body}
</main>
<footer><p>Powered by Google Gemini</p></footer>
</body>
</html>
"""


def render_idle(state: Idle) -> str:
    if state.image is not None:
        upload = f'<img src="{escape(state.image.preview_uri, quote=True)}" alt="Preview">'
    else:
        upload = "<span>Click to upload</span><p>PNG, JPG, GIF, WEBP</p>"
    error = f'<p class="error">{escape(state.error)}</p>' if state.error else ""
    return _page(f"""<form method="post" action="/generate" enctype="multipart/form-data">
<section>
<h3>1. Upload Image</h3>
<label for="file-upload">{upload}</label>
<input id="file-upload" name="image" type="file" accept="image/*">
<button type="submit" formaction="/image">Upload</button>
</section>
<section>
<h3>2. Describe the Video</h3>
<textarea name="prompt" rows="5" placeholder="e.g., A cinematic shot of the car driving through a neon-lit city at night, rain on the ground...">{escape(state.prompt)}</textarea>
</section>
{error}
<button type="submit">Generate Video</button>
</form>""")


def render_generating(state: Generating, refresh_sec: int = 3) -> str:
    return _page(f"""<section>
<p>Generating Your Video</p>
<p class="progress">{escape(state.progress)}</p>
</section>""", refresh_sec=refresh_sec)


def render_success(state: Success) -> str:
    return _page(f"""<section>
<h2>Video Generated Successfully!</h2>
<video src="/video" controls autoplay loop></video>
<form method="post" action="/reset"><button type="submit">Create Another Video</button></form>
</section>""")


def render_error(state: Error) -> str:
    return _page(f"""<section>
<h2>An Error Occurred</h2>
<p class="error">{escape(state.message)}</p>
<form method="post" action="/reset"><button type="submit">Try Again</button></form>
</section>""")


def render(state: SessionState, refresh_sec: int = 3) -> str:
    if isinstance(state, Generating):
        return render_generating(state, refresh_sec=refresh_sec)
    if isinstance(state, Success):
        return render_success(state)
    if isinstance(state, Error):
        return render_error(state)
    return render_idle(state)
