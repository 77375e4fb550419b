"""
X MCP Server entry point.

Loads credentials from the environment (or .env), picks the OAuth 1.0a or
bearer-token strategy, and serves JSON-RPC over stdin/stdout.
"""
import sys

from .auth import signer_from_env
from .client import XClient
from .config import Config, ServerInfo, parse_timeout, resolve_auth_mode
from .errors import XError
from .logger import logger
from .server import XMcpServer


def build_server(info: ServerInfo) -> XMcpServer:
    """Wire signer, client and server from configuration.

    Raises:
        ConfigError: if the selected auth mode is missing credentials or
            X_HTTP_TIMEOUT is not a positive number
        AuthError: if the credentials cannot be used for signing
    """
    mode = resolve_auth_mode()
    timeout = parse_timeout(Config.X_HTTP_TIMEOUT)
    signer = signer_from_env(mode)
    client = XClient(signer, base_url=Config.X_API_BASE_URL, timeout=timeout)
    logger.info(f'Auth mode: {mode}')
    return XMcpServer(client, info)


def main():
    info = ServerInfo()
    logger.info(f'Starting {info.name} v{info.version}')

    try:
        server = build_server(info)
    except XError as e:
        logger.error(f'Failed to create server: {e}')
        sys.exit(1)

    try:
        server.run_stdio()
    except KeyboardInterrupt:
        logger.info('Server interrupted')
    except OSError as e:
        logger.error(f'Server error: {e}')
        sys.exit(1)
    logger.info('Server stopped')


if __name__ == '__main__':
    main()
