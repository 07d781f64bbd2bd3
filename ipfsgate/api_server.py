"""
IPFS Gateway HTTP Listener

Local FastAPI server behind the ``ipfs:`` scheme. The host runtime rewrites
every ``ipfs:`` request to

    GET http://127.0.0.1:<port>/?url=<ipfs url>&nonce=<process nonce>

and this server answers it through ``GatewayServer``. The port is random and
the nonce is generated once per process, so nothing outside this process can
use the listener.
"""

import asyncio
import secrets
import socket
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response
from loguru import logger

from ipfsgate.backends.ipfs_backend import IPFSNode
from ipfsgate.config import ServerConfig, configure_logging
from ipfsgate.core.request_lifecycle import RequestLifecycle
from ipfsgate.gateway.handler import GatewayServer
from ipfsgate.naming.dnslink import DNSLinkResolver

NONCE_BYTES = 16

# non-standard "client closed request" status; never reaches the wire
CLIENT_CLOSED_REQUEST = 499


# =============================================================================
# Process-wide State
# =============================================================================

@dataclass(frozen=True)
class GatewayState:
    """Listener address and request nonce, fixed for the process lifetime."""
    host: str
    port: int
    nonce: str

    @classmethod
    def create(cls, host: str, port: int) -> "GatewayState":
        return cls(host=host, port=port, nonce=secrets.token_hex(NONCE_BYTES))

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    def gateway_url(self, target_url: str) -> str:
        """Local listener URL serving an ``ipfs:`` URL."""
        return f"{self.base_url}?url={quote(target_url, safe='')}&nonce={self.nonce}"


# =============================================================================
# FastAPI Application
# =============================================================================

async def watch_disconnect(request: Request, lifecycle: RequestLifecycle):
    """Abort the lifecycle once the client closes the connection."""
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            lifecycle.abort()
            return


def create_app(gateway: GatewayServer) -> FastAPI:
    """
    Build the listener application.

    Args:
        gateway: Request protocol implementation

    Returns:
        FastAPI app with a single catch-all route on '/'
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        gateway.node.setup()
        yield
        gateway.node.shutdown()

    app = FastAPI(
        title="IPFS Gateway",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    async def serve(request: Request) -> Response:
        lifecycle = gateway.new_lifecycle()
        watcher = asyncio.create_task(watch_disconnect(request, lifecycle))
        try:
            result = await gateway.handle(request.method, request.query_params, lifecycle)
        finally:
            watcher.cancel()

        if result is None:
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        return Response(content=result.body, status_code=result.status, headers=result.headers)

    # no method list: every method reaches the nonce check and gets our error page
    app.add_route("/", serve, include_in_schema=False)
    return app


# =============================================================================
# Listener
# =============================================================================

class GatewayListener:
    """Runs the gateway app under uvicorn on a local socket."""

    def __init__(
        self,
        config: ServerConfig,
        node: Optional[IPFSNode] = None,
        resolver: Optional[DNSLinkResolver] = None,
    ):
        self.config = config
        self.node = node or IPFSNode(ipfs_api=config.ipfs_api, ipfs_path=config.ipfs_path)
        self.resolver = resolver
        self.state: Optional[GatewayState] = None
        self.gateway: Optional[GatewayServer] = None
        self.server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> GatewayState:
        """Bind the socket, generate the nonce and start serving."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, self.config.port))
        except OSError:
            sock.close()
            raise
        host, port = sock.getsockname()[:2]

        self.state = GatewayState.create(host, port)
        self.gateway = GatewayServer(
            self.node,
            nonce=self.state.nonce,
            resolver=self.resolver,
            scheme=self.config.scheme,
        )
        uvicorn_config = uvicorn.Config(
            app=create_app(self.gateway),
            loop="asyncio",
            log_level=self.config.log_level.lower(),
        )
        self.server = uvicorn.Server(uvicorn_config)
        self._task = asyncio.create_task(self.server.serve(sockets=[sock]))

        while not self.server.started:
            if self._task.done():
                # serve() exited during startup; surface its error
                sock.close()
                self._task.result()
                raise RuntimeError("Gateway listener failed to start")
            await asyncio.sleep(0.05)

        logger.info("IPFS gateway listening on {}", self.state.base_url)
        return self.state

    async def wait(self):
        if self._task is not None:
            await self._task

    async def stop(self):
        if self.server is not None:
            self.server.should_exit = True
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("IPFS gateway stopped")


# =============================================================================
# Main Entry Point
# =============================================================================

async def run_gateway(config: ServerConfig):
    listener = GatewayListener(config)
    state = await listener.start()
    print(f"Gateway URL for ipfs:/ipfs/<key>: {state.gateway_url('ipfs:/ipfs/<key>')}")
    try:
        await listener.wait()
    finally:
        await listener.stop()


def main():
    """Run the gateway standalone."""
    config = ServerConfig.from_env()
    configure_logging(config.log_level)

    logger.info("Starting IPFS gateway on {}:{}", config.host, config.port or "<random>")
    logger.info("   IPFS API: {}", config.ipfs_api or "from repo config")

    try:
        asyncio.run(run_gateway(config))
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
