"""Resolve a token's metadata URI to its current image URL."""

import base64
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import unquote

import requests

from image_curator.core.errors import ResolutionError

logger = logging.getLogger(__name__)

IPFS_SCHEME = "ipfs://"
DATA_JSON_PREFIX = "data:application/json"


class MetadataResolver:
    """Fetches token metadata and returns its ``image`` field."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        ipfs_gateway: str = "https://ipfs.io/ipfs/",
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.ipfs_gateway = ipfs_gateway.rstrip("/") + "/"

    def to_http(self, uri: str) -> str:
        """Rewrite ``ipfs://`` URIs through the configured gateway."""
        if uri.startswith(IPFS_SCHEME):
            path = uri[len(IPFS_SCHEME):]
            if path.startswith("ipfs/"):
                path = path[len("ipfs/"):]
            return self.ipfs_gateway + path
        return uri

    def resolve(self, token_uri: Optional[str]) -> str:
        """
        Fetch live metadata and return the image URL.

        Args:
            token_uri: The token's metadata URI (http(s), ipfs or data URI)

        Returns:
            HTTP(S) URL of the token image

        Raises:
            ResolutionError: If there is no URI, the fetch fails or the
                metadata has no image
        """
        if not token_uri:
            raise ResolutionError("Token has no tokenUri")

        metadata = self._fetch_metadata(token_uri)
        image_url = metadata.get("image") if isinstance(metadata, dict) else None
        if not image_url:
            raise ResolutionError("Missing image URL in live metadata")
        return self.to_http(str(image_url))

    def _fetch_metadata(self, token_uri: str) -> Dict[str, Any]:
        if token_uri.startswith(DATA_JSON_PREFIX):
            return _decode_data_uri(token_uri)

        try:
            response = self.session.get(self.to_http(token_uri), timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise ResolutionError(f"Could not fetch metadata from {token_uri}: {e}") from e
        except ValueError as e:
            raise ResolutionError(f"Metadata at {token_uri} is not JSON") from e


def _decode_data_uri(uri: str) -> Dict[str, Any]:
    header, _, payload = uri.partition(",")
    try:
        if header.endswith(";base64"):
            text = base64.b64decode(payload).decode("utf-8")
        else:
            text = unquote(payload)
        return json.loads(text)
    except (ValueError, UnicodeDecodeError) as e:
        raise ResolutionError(f"Malformed on-chain metadata: {e}") from e
