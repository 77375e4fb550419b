"""
X MCP Server
Expose X (Twitter) API operations as tools over line-delimited JSON-RPC.
"""

__version__ = "0.1.0"
__author__ = "Developer"

from .auth import BearerToken, HmacSigner, OAuthCredentials
from .client import XClient
from .errors import XError
from .server import XMcpServer

__all__ = ["BearerToken", "HmacSigner", "OAuthCredentials", "XClient", "XError", "XMcpServer"]
