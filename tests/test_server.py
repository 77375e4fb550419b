"""Tests for the JSON-RPC line dispatcher."""

import io
import json
from unittest.mock import MagicMock

import pytest

from x_mcp_server.config import ServerInfo
from x_mcp_server.server import DispatchState, XMcpServer

JACK = {"id": "12", "name": "Jack", "username": "jack"}


def _server(client=None):
    if client is None:
        client = MagicMock()
        client.get_user_by_username.return_value = JACK
    return XMcpServer(client, ServerInfo(name="test-server", version="9.9.9"))


def _run(server, *lines):
    outstream = io.StringIO()
    server.run(io.StringIO("".join(line + "\n" for line in lines)), outstream)
    return [json.loads(line) for line in outstream.getvalue().splitlines()]


def _payload(reply):
    return json.loads(reply["result"]["content"][0]["text"])


def test_initialize():
    """initialize returns the server identity and capabilities."""
    [reply] = _run(_server(), '{"jsonrpc":"2.0","id":1,"method":"initialize","params":{}}')
    assert reply["jsonrpc"] == "2.0"
    assert reply["id"] == 1
    result = reply["result"]
    assert result["protocolVersion"] == "2024-11-05"
    assert result["capabilities"] == {"tools": {"listChanged": False}}
    assert result["serverInfo"] == {"name": "test-server", "version": "9.9.9"}


def test_tools_list():
    """tools/list returns the five tool definitions."""
    [reply] = _run(_server(), '{"jsonrpc":"2.0","id":"a","method":"tools/list"}')
    names = [tool["name"] for tool in reply["result"]["tools"]]
    assert names == ["get_user", "post_tweet", "search_tweets", "get_tweet", "get_user_tweets"]
    assert all("inputSchema" in tool for tool in reply["result"]["tools"])


def test_tools_call_get_user():
    """A get_user call wraps the success envelope as text content."""
    request = {"jsonrpc": "2.0", "id": 7, "method": "tools/call",
               "params": {"name": "get_user", "arguments": {"identifier": "jack"}}}
    [reply] = _run(_server(), json.dumps(request))
    assert reply["id"] == 7
    assert "error" not in reply
    assert reply["result"]["content"][0]["type"] == "text"
    assert reply["result"]["isError"] is False
    assert _payload(reply) == {"success": True, "user": JACK}


def test_tools_call_user_not_found():
    """A missing user is a successful reply carrying a failure payload."""
    client = MagicMock()
    client.get_user_by_username.return_value = None
    request = {"jsonrpc": "2.0", "id": 8, "method": "tools/call",
               "params": {"name": "get_user", "arguments": {"identifier": "nobody"}}}
    [reply] = _run(_server(client), json.dumps(request))
    assert "error" not in reply
    assert reply["result"]["isError"] is True
    assert _payload(reply) == {"success": False, "error": "User not found"}


def test_tools_call_unknown_tool():
    """An unknown tool name is reported in the payload, not as a protocol error."""
    request = {"jsonrpc": "2.0", "id": 9, "method": "tools/call", "params": {"name": "nope", "arguments": {}}}
    [reply] = _run(_server(), json.dumps(request))
    assert _payload(reply) == {"success": False, "error": "Unknown tool: nope"}


def test_tools_call_without_params():
    """tools/call with no params names the empty tool."""
    [reply] = _run(_server(), '{"jsonrpc":"2.0","id":10,"method":"tools/call"}')
    assert _payload(reply) == {"success": False, "error": "Unknown tool: "}


def test_tools_call_search_clamps():
    """search_tweets forwards a clamped max_results to the client."""
    client = MagicMock()
    client.search_tweets.return_value = []
    request = {"jsonrpc": "2.0", "id": 11, "method": "tools/call",
               "params": {"name": "search_tweets", "arguments": {"query": "python", "max_results": 500}}}
    [reply] = _run(_server(client), json.dumps(request))
    assert _payload(reply) == {"success": True, "tweets": [], "count": 0}
    assert client.search_tweets.call_args[0][0].max_results == 100


def test_unknown_method():
    """Unknown methods get a -32601 error."""
    [reply] = _run(_server(), '{"jsonrpc":"2.0","id":3,"method":"resources/list"}')
    assert reply == {"jsonrpc": "2.0", "id": 3, "error": {"code": -32601, "message": "Method not found"}}


def test_missing_method_and_id():
    """An object without method or id is answered with a null id."""
    [reply] = _run(_server(), "{}")
    assert reply["id"] is None
    assert reply["error"]["code"] == -32601


def test_non_string_method_is_unknown():
    """A non-string method is treated as the empty method."""
    [reply] = _run(_server(), '{"id":4,"method":42}')
    assert reply["error"]["code"] == -32601


@pytest.mark.parametrize("line", ["not json", "{\"unterminated\": ", "[1, 2, 3]", "\"initialize\"", "42", "", "   "])
def test_bad_lines_produce_no_output(line):
    """Unparseable, non-object and blank lines are dropped silently."""
    assert _run(_server(), line) == []


def test_bad_line_does_not_break_session():
    """A dropped line does not affect the next request."""
    replies = _run(_server(), "garbage", '{"id":2,"method":"initialize"}')
    assert len(replies) == 1
    assert replies[0]["id"] == 2


@pytest.mark.parametrize("request_id", ["abc", 0, 123456789012345678, -1, 1.5, None, "", "ünï"])
def test_id_is_echoed(request_id):
    """Every reply carries the request id unchanged."""
    line = json.dumps({"jsonrpc": "2.0", "id": request_id, "method": "tools/list"})
    [reply] = _run(_server(), line)
    assert reply["id"] == request_id
    assert type(reply["id"]) is type(request_id)


def test_one_reply_per_request_in_order():
    """Replies come back one per line in request order."""
    lines = [json.dumps({"jsonrpc": "2.0", "id": i, "method": m})
             for i, m in enumerate(["initialize", "tools/list", "bogus", "tools/list"])]
    outstream = io.StringIO()
    _server().run(io.StringIO("\n".join(lines) + "\n"), outstream)
    raw = outstream.getvalue()
    assert raw.endswith("\n")
    assert [json.loads(line)["id"] for line in raw.splitlines()] == [0, 1, 2, 3]


def test_last_line_without_newline_is_processed():
    """A final request without a trailing newline still gets a reply."""
    outstream = io.StringIO()
    _server().run(io.StringIO('{"id":1,"method":"initialize"}'), outstream)
    assert json.loads(outstream.getvalue())["id"] == 1


def test_state_is_closed_after_eof():
    """End of input closes the dispatcher."""
    server = _server()
    assert server.state is DispatchState.AWAITING_LINE
    server.run(io.StringIO(""), io.StringIO())
    assert server.state is DispatchState.CLOSED


def test_read_error_closes_and_raises():
    """A stream read failure ends the session."""
    instream = MagicMock(spec=["readline"])
    instream.readline.side_effect = OSError("broken pipe")
    server = _server()
    with pytest.raises(OSError):
        server.run(instream, io.StringIO())
    assert server.state is DispatchState.CLOSED


def test_unserializable_reply_is_dropped(monkeypatch):
    """A reply that cannot be serialized is skipped and the loop continues."""
    server = _server()
    original = server.handle_request

    def handle(request):
        if request.get("id") == "bad":
            return {"jsonrpc": "2.0", "id": "bad", "result": {"value": object()}}
        return original(request)

    monkeypatch.setattr(server, "handle_request", handle)
    replies = _run(server, '{"id":"bad","method":"initialize"}', '{"id":"good","method":"initialize"}')
    assert [r["id"] for r in replies] == ["good"]


def test_output_is_flushed_per_reply():
    """Each reply is flushed before the next line is read."""
    outstream = MagicMock()
    instream = io.StringIO('{"id":1,"method":"initialize"}\n{"id":2,"method":"initialize"}\n')
    _server().run(instream, outstream)
    assert outstream.write.call_count == 2
    assert outstream.flush.call_count == 2


def test_invalid_utf8_line_is_dropped():
    """A line that is not valid UTF-8 is skipped and the session continues."""
    raw = b'\xff\xfe garbage\n{"jsonrpc":"2.0","id":1,"method":"initialize"}\n'
    outstream = io.StringIO()
    server = _server()
    server.run(io.TextIOWrapper(io.BytesIO(raw), encoding="utf-8"), outstream)
    replies = [json.loads(line) for line in outstream.getvalue().splitlines()]
    assert [r["id"] for r in replies] == [1]
    assert server.state is DispatchState.CLOSED


def test_byte_stream_input():
    """Requests can be read from a binary stream, including UTF-8 text."""
    raw = '{"id":"ünï","method":"initialize"}\n'.encode("utf-8") + b"\x80 not utf-8\n"
    outstream = io.StringIO()
    _server().run(io.BytesIO(raw), outstream)
    replies = [json.loads(line) for line in outstream.getvalue().splitlines()]
    assert [r["id"] for r in replies] == ["ünï"]
