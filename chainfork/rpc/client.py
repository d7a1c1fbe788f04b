"""
Node RPC Client
---------------
JSON-RPC 2.0 over a single persistent WebSocket. Requests are multiplexed on
the connection and matched to responses by id, so many calls can be in flight
at once; the caller bounds that number with a ConcurrencyLimiter.
"""
import asyncio
import itertools
import json
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from ..errors import RpcError
from .metadata import PalletInfo, decode_pallets

logger = structlog.get_logger()


class NodeClient:
    """
    Client for the storage and chain RPC methods of a node.

    Use as an async context manager::

        async with NodeClient("ws://127.0.0.1:9944") as client:
            head = await client.get_finalized_head()
    """

    def __init__(self, url: str, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the client.

        Args:
            url: WebSocket url of the node
            session: Optional aiohttp session to reuse; created if omitted
        """
        self.url = url
        self.session = session
        self._owns_session = session is None
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self.pending_requests: Dict[int, asyncio.Future] = {}
        self.pending_methods: Dict[int, str] = {}
        self._ids = itertools.count(1)
        self._send_lock = asyncio.Lock()
        self._reader_task: Optional[asyncio.Task] = None
        self._closed_error: Optional[RpcError] = None

    async def connect(self) -> None:
        """Open the WebSocket and start the response reader."""
        if self.ws is not None:
            return
        if self.session is None:
            self.session = aiohttp.ClientSession()
        try:
            self.ws = await self.session.ws_connect(self.url, max_msg_size=0)
        except (aiohttp.ClientError, OSError) as e:
            await self._close_session()
            raise RpcError(f"cannot connect to {self.url}: {e}", "connect") from e
        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info("rpc_connected", url=self.url)

    async def close(self) -> None:
        """Close the connection; pending requests fail with RpcError."""
        if self.ws is not None:
            await self.ws.close()
        if self._reader_task is not None:
            await self._reader_task
            self._reader_task = None
        self.ws = None
        await self._close_session()
        logger.debug("rpc_closed", url=self.url)

    async def _close_session(self) -> None:
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "NodeClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Send one JSON-RPC request and wait for its result.

        Raises:
            RpcError: On transport failure or a JSON-RPC error response
        """
        if self._closed_error is not None:
            raise RpcError(f"{method}: {self._closed_error}")
        if self.ws is None:
            raise RpcError(f"{method}: client is not connected")

        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self.pending_requests[request_id] = future
        self.pending_methods[request_id] = method
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []}
        try:
            async with self._send_lock:
                await self.ws.send_str(json.dumps(payload))
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            self.pending_requests.pop(request_id, None)
            self.pending_methods.pop(request_id, None)
            raise RpcError(f"{method}: send failed: {e}") from e

        try:
            return await future
        finally:
            self.pending_requests.pop(request_id, None)
            self.pending_methods.pop(request_id, None)

    async def _read_loop(self) -> None:
        error = RpcError("connection closed")
        try:
            async for msg in self.ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = RpcError(f"websocket error: {self.ws.exception()}")
                    break
        except Exception as e:
            error = RpcError(f"receive failed: {e}")
        finally:
            self._closed_error = error
            for request_id, future in self.pending_requests.items():
                if not future.done():
                    method = self.pending_methods.get(request_id)
                    future.set_exception(RpcError(f"{method}: {error}"))

    def _dispatch(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("rpc_unparseable_message", size=len(raw))
            return
        if not isinstance(message, dict):
            logger.warning("rpc_unparseable_message", size=len(raw), kind=type(message).__name__)
            return

        request_id = message.get("id")
        future = self.pending_requests.get(request_id)
        if future is None or future.done():
            return

        if "error" in message:
            err = message["error"] or {}
            future.set_exception(RpcError(
                f"{self.pending_methods.get(request_id)}: {err.get('message', 'unknown error')}",
                code=err.get("code"),
            ))
        else:
            future.set_result(message.get("result"))

    async def get_keys_paged(
        self,
        prefix: str,
        count: int,
        start_key: Optional[str] = None,
        at: Optional[str] = None,
    ) -> List[str]:
        """One page of storage keys after ``start_key`` at block ``at``."""
        return await self.request("state_getKeysPaged", [prefix, count, start_key, at])

    async def get_storage(self, key: str, at: Optional[str] = None) -> Optional[str]:
        """Hex value of ``key`` at block ``at``, or None if absent."""
        return await self.request("state_getStorage", [key, at])

    async def get_metadata(self, at: Optional[str] = None) -> List[PalletInfo]:
        """Pallets of the runtime at ``at`` (latest when omitted)."""
        params = [at] if at else []
        metadata_hex = await self.request("state_getMetadata", params)
        return decode_pallets(metadata_hex)

    async def get_finalized_head(self) -> str:
        """Hash of the most recent finalized block."""
        head = await self.request("chain_getFinalizedHead")
        if not head:
            raise RpcError("node returned no finalized head", "resolve block")
        return head
