"""Remote rule executor.

By default an exact HTTP 200 means the field passed validation, any other
status means it didn't. ``data-eager-remote-reverse="true"`` reverses this.

Each field owns one request handle. Starting a request for a field aborts the
field's in-flight request, so at most one call per field is outstanding and
only the newest one can settle.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import unquote

import httpx
from pydantic import BaseModel, ValidationError

from eagerform.core.errors import RequestAborted, RuleRejected, RuleTransportError
from eagerform.core.types import Field
from eagerform.messages.resolver import MessageResolver

logger = logging.getLogger(__name__)


class RemoteRequestOptions(BaseModel):
    """Request options read from the ``<attribute>-options`` JSON attribute."""

    method: str = "GET"
    headers: dict[str, str] = {}
    data: Any = None


class RemoteRequest:
    """Reusable request handle for one field."""

    def __init__(self, field_id: str):
        self.field_id = field_id
        self.task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self.task is not None and not self.task.done()

    def abort(self) -> bool:
        """Cancel the in-flight request. Returns True if one was running."""
        if not self.in_flight:
            return False
        self.task.cancel()
        return True


class RemoteRuleExecutor:
    """Issues remote validation requests, one outstanding request per field."""

    def __init__(
        self,
        resolver: MessageResolver,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        on_busy: Callable[[Field, bool], None] | None = None,
    ):
        """Initialize the executor.

        Args:
            resolver: Message resolver used for the failure message
            client: HTTP client; created lazily when omitted
            timeout: Request timeout in seconds (None disables it)
            on_busy: Called with (field, True/False) around each request
        """
        self.resolver = resolver
        self.timeout = timeout
        self.on_busy = on_busy
        self._client = client
        self._owns_client = client is None
        self._requests: dict[str, RemoteRequest] = {}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def handle(self, field: Field) -> RemoteRequest:
        """Get the field's request handle, creating it on first use."""
        if field.id not in self._requests:
            self._requests[field.id] = RemoteRequest(field.id)
        return self._requests[field.id]

    def request_options(self, field: Field, attribute: str) -> RemoteRequestOptions:
        """Read request options; malformed JSON keeps the defaults."""
        raw = field.get_attribute(f"{attribute}-options")
        if raw:
            try:
                return RemoteRequestOptions.model_validate_json(raw)
            except ValidationError:
                pass
        return RemoteRequestOptions()

    def endpoint(self, field: Field, attribute: str) -> str:
        return unquote(field.get_attribute(attribute, "")).replace("{value}", field.value)

    async def run(self, field: Field, attribute: str) -> None:
        """Validate a field against its remote endpoint.

        Raises:
            RuleRejected: The endpoint rejected the value
            RuleTransportError: The endpoint could not be reached
            RequestAborted: A newer request for the field replaced this one
        """
        url = self.endpoint(field, attribute)
        reverse = field.get_attribute(f"{attribute}-reverse") == "true"
        options = self.request_options(field, attribute)

        handle = self.handle(field)
        if handle.abort():
            logger.debug("Aborted pending remote request for field '%s'", field.name)

        task = asyncio.get_running_loop().create_task(self._send(url, options))
        handle.task = task

        if self.on_busy:
            self.on_busy(field, True)
        try:
            await asyncio.wait({task})
        finally:
            if handle.task is task:
                if self.on_busy:
                    self.on_busy(field, False)
                if not task.done():
                    task.cancel()

        if task.cancelled():
            raise RequestAborted(field.id)

        try:
            response = task.result()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Remote validation request to %s failed: %s", url, e)
            raise RuleTransportError(str(e)) from e

        success = response.status_code == 200
        if reverse:
            success = not success
        if not success:
            raise RuleRejected(self.resolver.translate("remoteInvalid", ""))

    async def _send(self, url: str, options: RemoteRequestOptions) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": options.headers}
        if isinstance(options.data, (str, bytes)):
            kwargs["content"] = options.data
        elif options.data is not None:
            kwargs["content"] = json.dumps(options.data)
        return await self.client.request(options.method.upper(), url, **kwargs)

    def abort(self, field: Field) -> None:
        if field.id in self._requests:
            self._requests[field.id].abort()

    def abort_all(self) -> None:
        for handle in self._requests.values():
            handle.abort()

    async def aclose(self) -> None:
        """Abort pending requests and close the client if this executor created it."""
        self.abort_all()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
