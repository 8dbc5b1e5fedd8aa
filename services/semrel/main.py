import asyncio
import json
import uuid

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from semrel import verify as V
from semrel.config import load_settings
from semrel.errors import GatewayError, SemrelError
from semrel.version import parse_release_branch
from services.semrel import runner

load_dotenv()
runner.configure_logging()
logger = runner.logger

app = FastAPI(title="semrel", version="0.1.0")

SET = load_settings()

# one run at a time; alias writes must not interleave
_run_lock = asyncio.Lock()


@app.middleware("http")
async def request_id_middleware(request, call_next):  # type: ignore
    req_id = str(uuid.uuid4())
    request.state.request_id = req_id
    resp = await call_next(request)
    resp.headers["X-Request-ID"] = req_id
    return resp


@app.get("/healthz")
def healthz():
    return {
        "ok": True,
        "repository": SET.repository,
        "trunk_branch": SET.trunk_branch,
        "webhook": bool(SET.webhook_secret),
    }


@app.get("/readyz")
def readyz():
    missing = SET.missing()
    return {"ok": not missing, "missing": missing}


def require_auth(request: Request):
    if not SET.auth_token:
        raise HTTPException(status_code=403, detail="run_endpoint_disabled")
    auth = request.headers.get("Authorization")
    if not auth or auth != f"Bearer {SET.auth_token}":
        raise HTTPException(status_code=401, detail="unauthorized")
    return True


async def _run_release() -> Response:
    missing = SET.missing()
    if missing:
        return JSONResponse(status_code=503, content={"error": "not_configured", "missing": missing})
    async with _run_lock:
        try:
            report = await runner.execute(SET)
        except SemrelError as e:
            logger.error("release run failed: %s", e)
            return JSONResponse(status_code=409, content={"error": type(e).__name__, "detail": str(e)})
        except GatewayError as e:
            logger.error("release run failed: %s", e)
            return JSONResponse(
                status_code=502,
                content={"error": type(e).__name__, "detail": str(e), "status_code": e.status_code},
            )
    return Response(content=report.model_dump_json(), media_type="application/json", status_code=200)


@app.post("/hooks/github")
async def github_hook(request: Request):
    body = await request.body()
    if not SET.webhook_secret:
        return JSONResponse(status_code=400, content={"verified": False, "reason": "webhook_secret_not_set"})
    verified, reason = V.verify_github(
        SET.webhook_secret, request.headers.get("X-Hub-Signature-256", ""), body
    )
    if not verified:
        return JSONResponse(status_code=400, content={"verified": False, "reason": reason})

    event = request.headers.get("X-GitHub-Event", "")
    if event == "ping":
        return {"event": "ping", "verified": True}
    if event != "push":
        return {"event": event, "skipped": True}

    try:
        payload = json.loads(body.decode("utf-8"))
    except ValueError:
        return JSONResponse(status_code=400, content={"verified": True, "reason": "invalid_json"})
    ref = payload.get("ref") if isinstance(payload, dict) else None
    branch = V.pushed_branch(ref)
    if branch is None or not (branch == SET.trunk_branch or parse_release_branch(branch)):
        return {"event": "push", "ref": ref, "skipped": True}
    logger.info("push to %s, starting release run", branch)
    return await _run_release()


@app.post("/run")
async def run(_: bool = Depends(require_auth)):
    return await _run_release()


@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def main():
    # Convenience CLI entrypoint: `semrel-server`
    import os

    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8787"))
    uvicorn.run("services.semrel.main:app", host=host, port=port, reload=False)
