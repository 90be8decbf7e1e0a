"""
hdrify Web Interface
====================

A single-page converter served by FastAPI. The page uploads a clip, lets
the user pick intensity and tone curve, starts the conversion and offers
the result for download. Vanilla JavaScript, no external CDN dependencies.

To run:
    hdrify serve
    # or
    python -m hdrify.web.server --port 8000

Then open http://localhost:8000 in your browser.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, Response
from pydantic import BaseModel
import uvicorn

from hdrify.core.config import Settings, resolve_settings
from hdrify.core.engine import FFmpegEngine
from hdrify.core.errors import (
    ConversionInProgressError,
    ConversionStateError,
    InvalidParameterError,
)
from hdrify.core.handle import EngineHandle
from hdrify.graph.compiler import (
    INTENSITY_MAX,
    INTENSITY_MIN,
    INTENSITY_STEP,
    ToneCurve,
    ToneParameters,
)
from hdrify.jobs.orchestrator import ConversionOrchestrator
from hdrify.utils.probe import preview_from_bytes


logger = logging.getLogger(__name__)


class ConvertRequest(BaseModel):
    """Body of POST /api/convert."""
    intensity: float = 1.25
    curve: str = ToneCurve.HABLE.value


HTML_TEMPLATE = '''<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Realistic HDR Video Converter</title>
<style>
body {font-family: sans-serif; background: #111; color: #eee; max-width: 900px; margin: 2em auto;}
fieldset {border: 1px solid #444; margin-bottom: 1em;}
#logs {background: #000; font: 12px monospace; height: 14em; overflow-y: auto; padding: .5em;}
#error {color: #f66;}
img {max-width: 100%;}
</style>
</head>
<body>
<h1>Realistic HDR Video Converter</h1>
<p>Status: <b id="label">…</b></p>
<fieldset>
  <input type="file" id="file" accept="video/*">
  <button id="convert" disabled>Convert to HDR</button>
</fieldset>
<fieldset>
  <label>HDR Intensity <span id="iv"></span>
    <input type="range" id="intensity" min="{imin}" max="{imax}" step="{istep}" value="1.25"></label>
  <label>Tone Mapping Curve <select id="curve">{curves}</select></label>
</fieldset>
<p id="error"></p>
<img id="preview" alt="">
<h3>Processing Log</h3>
<div id="logs"></div>
<p><a id="download" href="/api/result" style="display:none">Download HDR Video</a></p>
<script>
const $ = id => document.getElementById(id);
function show(s) {
    $('label').textContent = s.label;
    $('error').textContent = s.error || '';
    $('logs').textContent = s.logs.join('\\n');
    $('convert').disabled = !s.source || s.engine !== 'loaded' || s.state === 'running';
    $('file').disabled = s.state === 'running';
    $('download').style.display = s.result ? '' : 'none';
}
async function poll() {
    show(await (await fetch('/api/status')).json());
}
$('intensity').oninput = () => { $('iv').textContent = Number($('intensity').value).toFixed(2) + '×'; };
$('file').onchange = async () => {
    const f = $('file').files[0];
    if (!f) return;
    await fetch('/api/source?filename=' + encodeURIComponent(f.name), {method: 'POST', body: f});
    $('preview').src = '/api/source/preview?t=' + Date.now();
    poll();
};
$('convert').onclick = async () => {
    const timer = setInterval(poll, 1000);
    const body = {intensity: Number($('intensity').value), curve: $('curve').value};
    const r = await fetch('/api/convert', {method: 'POST', headers: {'Content-Type': 'application/json'}, body: JSON.stringify(body)});
    clearInterval(timer);
    if (!r.ok) { $('error').textContent = (await r.json()).detail; return; }
    show(await r.json());
};
$('intensity').oninput();
poll();
setInterval(() => { if ($('label').textContent.endsWith('…')) poll(); }, 2000);
</script>
</body>
</html>'''


def render_index() -> str:
    curves = "".join(
        f'<option value="{curve.value}">{curve.label}</option>' for curve in ToneCurve
    )
    return (
        HTML_TEMPLATE
        .replace("{imin}", f"{INTENSITY_MIN:.2f}")
        .replace("{imax}", f"{INTENSITY_MAX:.2f}")
        .replace("{istep}", f"{INTENSITY_STEP:.2f}")
        .replace("{curves}", curves)
    )


def create_app(
    orchestrator: ConversionOrchestrator | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Build the web application.

    Args:
        orchestrator: Job orchestrator to serve; when None an FFmpeg-backed
            one is created and its engine is closed on shutdown
        settings: Settings used when the orchestrator is created here
    """
    owns_engine = orchestrator is None
    if orchestrator is None:
        settings = settings or resolve_settings()
        handle = EngineHandle(FFmpegEngine.from_settings(settings), settings.log_capacity)
        orchestrator = ConversionOrchestrator(handle, settings)
    jobs = orchestrator

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await jobs.start_session()
        try:
            yield
        finally:
            jobs.close()
            if owns_engine:
                jobs.engine.close()

    app = FastAPI(title="hdrify", lifespan=lifespan)
    app.state.orchestrator = jobs

    @app.get("/", response_class=HTMLResponse)
    async def index():
        return render_index()

    @app.get("/api/status")
    async def status():
        return jobs.snapshot()

    @app.post("/api/session")
    async def start_session():
        """Retry engine initialization after a failure."""
        try:
            await jobs.start_session()
        except ConversionInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return jobs.snapshot()

    @app.post("/api/source")
    async def upload_source(request: Request, filename: str = "source.mp4"):
        data = await request.body()
        if not data:
            raise HTTPException(status_code=400, detail="Empty upload")
        try:
            jobs.select_source(data, filename)
        except ConversionInProgressError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return jobs.snapshot()

    @app.get("/api/source/preview")
    async def source_preview():
        """First frame of the selected source as JPEG."""
        source = jobs.source
        if source is None:
            raise HTTPException(status_code=404, detail="No source selected")
        loop = asyncio.get_running_loop()
        try:
            jpeg = await loop.run_in_executor(None, preview_from_bytes, source.data, source.name)
        except RuntimeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return Response(content=jpeg, media_type="image/jpeg")

    @app.post("/api/convert")
    async def convert(body: ConvertRequest):
        params = ToneParameters(intensity=body.intensity, curve=body.curve)
        try:
            await jobs.start_conversion(params)
        except InvalidParameterError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except (ConversionInProgressError, ConversionStateError) as e:
            raise HTTPException(status_code=409, detail=str(e))
        return jobs.snapshot()

    @app.get("/api/result")
    async def download_result():
        result = jobs.result
        if result is None:
            raise HTTPException(status_code=404, detail="No converted video available")
        return FileResponse(result.path, media_type=result.media_type, filename=result.filename)

    return app


def serve(settings: Settings | None = None, host: str | None = None, port: int | None = None) -> None:
    """Run the web interface with uvicorn."""
    settings = settings or resolve_settings()
    host = host or settings.host
    port = port or settings.port

    print("=" * 50)
    print("hdrify web converter")
    print(f"Open http://{host}:{port}")
    print("=" * 50)
    uvicorn.run(create_app(settings=settings), host=host, port=port, log_level="warning")


def main():
    import argparse
    parser = argparse.ArgumentParser(description="hdrify - web-based SDR to HDR converter")
    parser.add_argument('-c', '--config', type=str, help='Configuration file (JSON)')
    parser.add_argument('-p', '--port', type=int, default=None, help='Port to run server on (default: 8000)')
    parser.add_argument('--host', type=str, default=None, help='Host to bind to (default: 127.0.0.1)')
    args = parser.parse_args()
    serve(resolve_settings(args.config), args.host, args.port)


if __name__ == "__main__":
    main()
