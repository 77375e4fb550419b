"""
MCP Server
Line-delimited JSON-RPC 2.0 loop that routes tool calls to the X API client.
"""
import enum
import json
import sys
from typing import Any, BinaryIO, Dict, Optional, TextIO, Union

from .client import XClient
from .config import ServerInfo
from .logger import logger
from .tools import call_tool, list_tools
from .utils import format_envelope

JSONRPC_VERSION = '2.0'
METHOD_NOT_FOUND = -32601


class DispatchState(enum.Enum):
    AWAITING_LINE = 'awaiting_line'
    LINE_READ = 'line_read'
    DISPATCHED = 'dispatched'
    REPLY_WRITTEN = 'reply_written'
    CLOSED = 'closed'


def _reply(request_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {'jsonrpc': JSONRPC_VERSION, 'id': request_id, 'result': result}


def _error(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {'jsonrpc': JSONRPC_VERSION, 'id': request_id, 'error': {'code': code, 'message': message}}


class XMcpServer:
    """Serves one host session: one request line in, one reply line out."""

    def __init__(self, client: XClient, server_info: Optional[ServerInfo] = None):
        """
        Initialize the server.

        Args:
            client: X API client used by the tool handlers
            server_info: Name/version reported on ``initialize``
        """
        self.client = client
        self.server_info = server_info or ServerInfo()
        self.state = DispatchState.AWAITING_LINE

    def handle_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Build the JSON-RPC response for one parsed request object."""
        method = request.get('method')
        if not isinstance(method, str):
            method = ''
        request_id = request.get('id')
        logger.debug('Dispatching method=%r', method)

        if method == 'initialize':
            return _reply(request_id, {
                'protocolVersion': self.server_info.protocol_version,
                'capabilities': {'tools': {'listChanged': False}},
                'serverInfo': {'name': self.server_info.name, 'version': self.server_info.version},
            })

        if method == 'tools/list':
            return _reply(request_id, {'tools': list_tools()})

        if method == 'tools/call':
            params = request.get('params')
            if not isinstance(params, dict):
                params = {}
            name = params.get('name')
            if not isinstance(name, str):
                name = ''
            envelope = call_tool(name, params.get('arguments'), self.client)
            return _reply(request_id, {
                'content': [{'type': 'text', 'text': format_envelope(envelope)}],
                'isError': not envelope.get('success', False),
            })

        return _error(request_id, METHOD_NOT_FOUND, 'Method not found')

    def handle_line(self, line: Union[str, bytes]) -> Optional[str]:
        """
        Turn one input line into one serialized reply line.

        Byte lines are decoded as UTF-8. Returns None when the line is blank,
        is not valid UTF-8 or not a JSON object, or the reply cannot be
        serialized; nothing is written for such lines.
        """
        if isinstance(line, bytes):
            try:
                line = line.decode('utf-8')
            except UnicodeDecodeError:
                logger.debug('Dropping line that is not valid UTF-8')
                return None
        if not line.strip():
            return None
        try:
            request = json.loads(line)
        except ValueError:
            logger.debug('Dropping unparseable line')
            return None
        if not isinstance(request, dict):
            logger.debug('Dropping non-object JSON line')
            return None

        self.state = DispatchState.DISPATCHED
        response = self.handle_request(request)
        try:
            return json.dumps(response)
        except (TypeError, ValueError) as e:
            logger.error('Failed to serialize reply: %s', e)
            return None

    def run(self, instream: Union[TextIO, BinaryIO], outstream: TextIO):
        """
        Process requests until end of input.

        Lines are read from the byte layer of ``instream`` when it has one, so
        undecodable input is dropped per line instead of failing the read.

        Raises:
            OSError: if reading or writing a stream fails; the session is over
        """
        logger.info('X MCP Server listening for requests')
        reader = getattr(instream, 'buffer', instream)
        while True:
            self.state = DispatchState.AWAITING_LINE
            try:
                line = reader.readline()
            except OSError as e:
                self.state = DispatchState.CLOSED
                logger.error('Error reading from input stream: %s', e)
                raise
            if not line:
                break

            self.state = DispatchState.LINE_READ
            reply = self.handle_line(line)
            if reply is None:
                continue

            try:
                outstream.write(reply + '\n')
                outstream.flush()
            except OSError as e:
                self.state = DispatchState.CLOSED
                logger.error('Error writing to output stream: %s', e)
                raise
            self.state = DispatchState.REPLY_WRITTEN

        self.state = DispatchState.CLOSED
        logger.info('Input closed, shutting down')

    def run_stdio(self):
        self.run(sys.stdin, sys.stdout)
