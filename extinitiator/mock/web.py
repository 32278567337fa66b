"""HTTP and WebSocket server of the mock blockchain client."""

from __future__ import annotations

import argparse
import json
import logging
import time
from datetime import datetime
from typing import Any, Optional

from aiohttp import WSMsgType, web

from .bsn_irita import handle_bsn_irita_request
from .canned import PathArg
from .dispatch import handle_request
from .jsonrpc import JsonrpcMessage, MockRequestError
from .xtz import get_xtz_response

log = logging.getLogger(__name__)

_FAILED_BODY = "*FAILED TO READ BODY*"
_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def read_sanitized_json(body: bytes) -> str:
    """Re-encode a JSON object compactly with sorted keys."""
    data = json.loads(body)
    if data is not None and not isinstance(data, dict):
        raise ValueError("request body is not a JSON object")
    text = json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def read_body(body: bytes) -> str:
    """The request body as it is written to the access log."""
    if not body:
        return ""
    try:
        return read_sanitized_json(body)
    except ValueError as err:
        log.warning("unable to sanitize json for logging: %s", err)
        return _FAILED_BODY


@web.middleware
async def _log_requests(request: web.Request, handler: Any) -> web.StreamResponse:
    body = await request.read()
    start = time.monotonic()
    status = 500
    try:
        response = await handler(request)
        status = response.status
        return response
    except web.HTTPException as exc:
        status = exc.status
        raise
    finally:
        latency = time.monotonic() - start
        log.info(
            "%s %s status=%s query=%s body=%s clientIP=%s servedAt=%s latency=%.6fs",
            request.method,
            request.path,
            status,
            dict(request.query),
            read_body(body),
            request.remote,
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            latency,
        )


async def _parse_message(request: web.Request) -> Optional[JsonrpcMessage]:
    try:
        return JsonrpcMessage.from_json(await request.read())
    except MockRequestError as err:
        log.error("%s", err)
        return None


class _Routes:
    def __init__(self, directory: PathArg) -> None:
        self.directory = directory

    async def xtz_monitor(self, request: web.Request) -> web.Response:
        return self._xtz("monitor")

    async def xtz_operations(self, request: web.Request) -> web.Response:
        return self._xtz("operations")

    def _xtz(self, method: str) -> web.Response:
        try:
            resp = get_xtz_response(method, self.directory)
        except MockRequestError as err:
            log.error("%s", err)
            return web.json_response(None, status=400)
        return web.json_response(resp, status=200)

    async def bsn_irita_rpc(self, request: web.Request) -> web.Response:
        req = await _parse_message(request)
        if req is None:
            return web.json_response(None, status=400)
        error: Optional[Exception] = None
        rsp: list[JsonrpcMessage] = []
        try:
            rsp = handle_bsn_irita_request(req, self.directory)
        except (MockRequestError, ValueError) as err:
            error = err
        if error is not None or not rsp:
            response = JsonrpcMessage(version=req.version, id=req.id)
            if error is not None:
                log.error("%s", error)
                response.error = {"code": 0, "message": str(error)}
            return web.json_response(response.to_dict(), status=400)
        return web.json_response(rsp[0].to_dict(), status=200)

    async def rpc(self, request: web.Request) -> web.Response:
        req = await _parse_message(request)
        if req is None:
            return web.json_response(None, status=400)
        try:
            resp = handle_request("rpc", request.match_info["platform"], req, self.directory)
        except (MockRequestError, ValueError) as err:
            log.error("%s", err)
            return web.json_response(None, status=400)
        if not resp:
            return web.json_response(None, status=400)
        return web.json_response(resp[0].to_dict(), status=200)

    async def ws(self, request: web.Request) -> web.StreamResponse:
        socket = web.WebSocketResponse()
        if not socket.can_prepare(request).ok:
            log.error("websocket upgrade failed")
            return web.json_response(None, status=500)
        await socket.prepare(request)
        platform = request.match_info["platform"]
        try:
            async for message in socket:
                if message.type == WSMsgType.TEXT:
                    send = socket.send_str
                elif message.type == WSMsgType.BINARY:
                    send = socket.send_bytes
                elif message.type == WSMsgType.ERROR:
                    log.error("read: %s", socket.exception())
                    break
                else:
                    continue
                await self._answer(message.data, send, platform)
        finally:
            await socket.close()
        return socket

    async def _answer(self, data: Any, send: Any, platform: str) -> None:
        try:
            req = JsonrpcMessage.from_json(data)
        except MockRequestError as err:
            log.error("unmarshal: %s", err)
            return
        try:
            resp = handle_request("ws", platform, req, self.directory)
        except (MockRequestError, ValueError) as err:
            log.error("handle request: %s", err)
            return
        for msg in resp:
            text = msg.to_json()
            payload = text if send.__name__ == "send_str" else text.encode()
            try:
                await send(payload)
            except (ConnectionError, RuntimeError) as err:
                log.error("write: %s", err)
                break


def create_app(directory: PathArg = None) -> web.Application:
    """The mock client's web application, serving canned data from ``directory``."""
    routes = _Routes(directory)
    app = web.Application(middlewares=[_log_requests])
    app.router.add_get("/http/xtz/monitor/heads/{chain_id}", routes.xtz_monitor)
    app.router.add_get(
        "/http/xtz/chains/main/blocks/{block_id}/operations", routes.xtz_operations
    )
    app.router.add_post("/", routes.bsn_irita_rpc)
    app.router.add_get("/ws/{platform}", routes.ws)
    app.router.add_post("/rpc/{platform}", routes.rpc)
    return app


def main(argv: Optional[list[str]] = None) -> int:
    """Run the mock blockchain client web server."""
    parser = argparse.ArgumentParser(description="Run the mock blockchain client.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--static-dir", default=None, help="directory of canned responses")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG)
    log.info("Starting mock blockchain client")
    web.run_app(create_app(args.static_dir), host=args.host, port=args.port)
    return 0