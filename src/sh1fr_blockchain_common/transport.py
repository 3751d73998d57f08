"""
Construction and teardown of AsyncWeb3 transports.
"""

import logging
from typing import Optional

from web3 import AsyncWeb3, AsyncHTTPProvider

logger = logging.getLogger(__name__)


def build_rpc_transport(rpc_url: str, timeout: float) -> AsyncWeb3:
    """Read-only AsyncWeb3 transport over HTTP JSON-RPC"""
    return AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


async def close_transport(transport: Optional[AsyncWeb3]) -> None:
    """
    Close the provider behind a transport.

    AsyncHTTPProvider keeps aiohttp sessions cached per endpoint until
    its disconnect() is awaited. Errors are logged, not raised.
    """
    provider = getattr(transport, "provider", None)
    disconnect = getattr(provider, "disconnect", None)
    if disconnect is None:
        return
    try:
        await disconnect()
    except NotImplementedError:
        pass
    except Exception as e:
        logger.warning(f"Error closing transport provider: {e}")
