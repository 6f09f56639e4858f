"""
Body Assembler - Rebuilds a request body from streamed chunks

Module: protocol.body_assembler
Date: 2026-10-19
Version: 0.1.0

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - Accumulation of BodyChunk fragments into one buffer
  - JSON object decoding on the final chunk
  - Single-resolution future (success or failure, exactly once)
  - Abort handling for dropped connections
  - Body size limit

ARCHITECTURE:
The transport delivers the body as an async iterable of BodyChunk. The
assembler appends every chunk to a single bytearray and, when the chunk
flagged final arrives, decodes the whole buffer as a JSON object.

The outcome is held in an asyncio.Future:
  - resolved with the decoded dict on success
  - failed with BodyParseError / BodyTooLargeError / StreamAbortedError
Once resolved, further feed() or abort() calls are ignored.

SECURITY NOTES:
- Empty bodies are malformed (no implicit {})
- Only JSON objects are accepted at the top level
- Buffer is bounded by max_body_size
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterable, Dict, Optional

from ..core.constants import MAX_BODY_SIZE
from ..transport.base_transport import BodyChunk


class BodyAssemblyError(Exception):
    """Base body assembly error"""
    pass


class BodyParseError(BodyAssemblyError):
    """Complete body is not a JSON object"""
    pass


class BodyTooLargeError(BodyAssemblyError):
    """Body exceeds the configured limit"""
    pass


class StreamAbortedError(BodyAssemblyError):
    """Connection ended before the final chunk"""
    pass


class BodyAssembler:
    """
    Accumulates body chunks for one request and decodes them once complete.

    One instance per request. Not reentrant: a single task feeds it.

    Typical usage:
        assembler = BodyAssembler()
        payload = await assembler.assemble(request.body)
    """

    def __init__(self, max_body_size: int = MAX_BODY_SIZE):
        """
        Initialize assembler

        Args:
            max_body_size: Maximum accepted body size in bytes
        """
        self.logger = logging.getLogger("protocol.body_assembler")
        self.max_body_size = max_body_size
        self._buffer = bytearray()
        self._future: Optional[asyncio.Future] = None

    @property
    def done(self) -> bool:
        """True once an outcome (success or failure) has been produced"""
        return self._future is not None and self._future.done()

    @property
    def size(self) -> int:
        """Bytes accumulated so far"""
        return len(self._buffer)

    def _outcome(self) -> asyncio.Future:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def feed(self, data: bytes, final: bool = False) -> None:
        """
        Append a chunk; decode the buffer if it is the final one

        Args:
            data: Chunk bytes (may be empty)
            final: True for the last chunk of the body
        """
        outcome = self._outcome()
        if outcome.done():
            self.logger.debug("Chunk received after outcome, ignored")
            return

        if len(self._buffer) + len(data) > self.max_body_size:
            self._buffer.clear()
            outcome.set_exception(
                BodyTooLargeError(f"Body exceeds {self.max_body_size} bytes")
            )
            return

        self._buffer.extend(data)

        if final:
            self._complete(outcome)

    def abort(self, reason: str = "Connection aborted") -> None:
        """
        Fail the pending assembly (connection dropped)

        Args:
            reason: Human readable cause, for logs
        """
        outcome = self._outcome()
        if outcome.done():
            return

        self.logger.info(f"Body stream aborted after {len(self._buffer)} bytes: {reason}")
        self._buffer.clear()
        outcome.set_exception(StreamAbortedError(reason))

    async def result(self) -> Dict[str, Any]:
        """
        Wait for the outcome

        Returns:
            Decoded JSON object

        Raises:
            BodyParseError, BodyTooLargeError, StreamAbortedError
        """
        return await self._outcome()

    async def assemble(self, chunks: AsyncIterable[BodyChunk]) -> Dict[str, Any]:
        """
        Drain a chunk source and return the decoded body

        Stops reading as soon as an outcome exists. A source that ends
        without a final chunk, or fails with a connection error, aborts.

        Args:
            chunks: Async iterable of BodyChunk

        Returns:
            Decoded JSON object

        Raises:
            BodyParseError, BodyTooLargeError, StreamAbortedError
        """
        self._outcome()
        try:
            async for chunk in chunks:
                self.feed(chunk.data, chunk.final)
                if self.done:
                    break
            if not self.done:
                self.abort("Stream ended before final chunk")
        except StreamAbortedError as e:
            self.abort(str(e))
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            self.abort(f"Connection lost: {e!r}")
        except asyncio.CancelledError:
            self.abort("Cancelled")
            # Retrieve so the loop doesn't report an unobserved exception
            self._future.exception()
            raise

        return await self.result()

    def _complete(self, outcome: asyncio.Future) -> None:
        raw = bytes(self._buffer)
        try:
            payload = json.loads(raw)
        except ValueError as e:
            outcome.set_exception(BodyParseError(f"Malformed JSON body: {e}"))
            return

        if not isinstance(payload, dict):
            outcome.set_exception(
                BodyParseError(f"Body must be a JSON object, got {type(payload).__name__}")
            )
            return

        self.logger.debug(f"Body assembled ({len(raw)} bytes)")
        outcome.set_result(payload)
