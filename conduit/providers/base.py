"""Base HTTP backend. Subclass and implement the wire-format hooks."""

from __future__ import annotations

from typing import Any, ClassVar

import httpx

from ..errors import ConfigurationError, TransportError
from ..infra.logging import get_logger
from ..stores import PreferenceStore
from ..types import AIMessage, AIRequest, AIResponse
from .streaming import DeltaStream, Emit, StreamDecoder, run_cancellable

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TIMEOUT = 120.0


def messages_to_dicts(messages: list[AIMessage], system: str | None = None) -> list[dict[str, str]]:
    out = [{"role": "system", "content": system}] if system else []
    out.extend({"role": m.role, "content": m.content} for m in messages)
    return out


class HTTPBackend:
    """One outbound request per call, credential read fresh every time.

    Subclasses set ``id``/``name``/``models``/``credential_id`` and implement
    :meth:`_endpoint`, :meth:`_headers`, :meth:`_build_body`,
    :meth:`_parse_response` and :meth:`_decoder`.
    """

    id: ClassVar[str]
    name: ClassVar[str]
    default_models: ClassVar[tuple[str, ...]] = ()
    credential_id: ClassVar[str | None] = None

    def __init__(
        self,
        preferences: PreferenceStore,
        client: httpx.AsyncClient | None = None,
        models: list[str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        stream_buffer: int = 64,
    ) -> None:
        self.models: list[str] = list(models if models is not None else self.default_models)
        self._prefs = preferences
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._stream_buffer = stream_buffer

    # -- Override these --

    def _endpoint(self) -> str:
        raise NotImplementedError

    def _headers(self, credential: str | None) -> dict[str, str]:
        raise NotImplementedError

    def _build_body(self, request: AIRequest, stream: bool) -> dict[str, Any]:
        raise NotImplementedError

    def _parse_response(self, data: dict[str, Any], request: AIRequest) -> AIResponse:
        raise NotImplementedError

    def _decoder(self) -> StreamDecoder:
        raise NotImplementedError

    # -- Public surface --

    async def chat(self, request: AIRequest) -> AIResponse:
        credential = self._credential()
        url = self._endpoint()
        headers = self._headers(credential)
        body = self._build_body(request, stream=False)
        logger.debug("chat_request", backend=self.id, model=request.model)
        data = await run_cancellable(self._post(url, headers, body), request.cancel_token, self.id)
        return self._parse_response(data, request)

    def stream(self, request: AIRequest) -> DeltaStream:
        credential = self._credential()
        url = self._endpoint()
        headers = self._headers(credential)
        body = self._build_body(request, stream=True)
        decoder = self._decoder()

        async def produce(emit: Emit) -> None:
            logger.debug("stream_request", backend=self.id, model=request.model)
            try:
                async with self._http().stream("POST", url, headers=headers, json=body) as resp:
                    if not resp.is_success:
                        raw = await resp.aread()
                        raise TransportError.from_status(
                            self.id, resp.status_code, raw.decode("utf-8", errors="replace")
                        )
                    async for chunk in resp.aiter_bytes():
                        for delta in decoder.feed(chunk):
                            await emit(delta)
                        if decoder.done:
                            return
                    for delta in decoder.finish():
                        await emit(delta)
            except httpx.HTTPError as e:
                raise TransportError(self.id, f"{self.name} stream failed: {e}", cause=e) from e

        return DeltaStream(produce, request.cancel_token, maxsize=self._stream_buffer, name=self.id)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    # -- Internals --

    def _credential(self) -> str | None:
        if self.credential_id is None:
            return None
        key = self._prefs.get_api_key(self.credential_id)
        if not key:
            raise ConfigurationError(
                self.id, f"{self.name} API key not configured. Add it in settings."
            )
        return key

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout, connect=10.0))
        return self._client

    async def _post(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await self._http().post(url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise TransportError(self.id, f"{self.name} request failed: {e}", cause=e) from e
        if not resp.is_success:
            raise TransportError.from_status(self.id, resp.status_code, resp.text)
        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(
                self.id, f"{self.name} returned invalid JSON", resp.status_code, resp.text, e
            ) from e
        if not isinstance(data, dict):
            raise TransportError(
                self.id, f"{self.name} returned a non-object JSON body", resp.status_code, resp.text
            )
        return data
