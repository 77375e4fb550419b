import logging
import sys

from .config import Config

# stdout carries JSON-RPC replies; diagnostics go to stderr only
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    stream=sys.stderr,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger('x_mcp_server')
