"""
Client identification for JSON-RPC requests.

Solana RPC providers identify client libraries by the ``solana-client``
header (the JavaScript client sends ``js/<version>``). The RPC client in this
package sends ``py/solana-alt/<version>``, where the version comes from the
installed package metadata.

Examples:
    Adding the header to a bare solana-py client::

        from solana.rpc.async_api import AsyncClient
        from solana_alt.metadata import Metadata

        headers = {Metadata.SOLANA_CLIENT_HEADER: Metadata.get_client_header_val()}
        client = AsyncClient("https://api.devnet.solana.com", extra_headers=headers)
"""

import importlib.metadata as metadata

# Package name constant for metadata lookup
PACKAGE_NAME = "solana-alt"


class Metadata:
    """Header constants and values sent with every RPC request."""

    SOLANA_CLIENT_HEADER = "solana-client"

    @staticmethod
    def get_client_header_val():
        """Return ``py/solana-alt/<installed version>``.

        Raises:
            PackageNotFoundError: If the package is not installed.
        """
        version = metadata.version(PACKAGE_NAME)
        return f"py/{PACKAGE_NAME}/{version}"
