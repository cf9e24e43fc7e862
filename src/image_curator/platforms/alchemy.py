"""
Token enumeration through the Alchemy NFT API (v3).

Every run enumerates the whole contract afresh; no cursor is persisted.
"""

import logging
import time
from typing import Any, Dict, Iterator, Optional

import requests

from image_curator.core.errors import EnumerationError
from image_curator.core.interfaces import Item

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


class AlchemyEnumerator:
    """Lazily yields every token of one contract."""

    def __init__(
        self,
        api_key: Optional[str],
        contract_address: str,
        network: str = "base-mainnet",
        page_size: int = 100,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        max_retries: int = 5,
    ):
        """
        Initialize the enumerator.

        Args:
            api_key: Alchemy API key
            contract_address: Address of the NFT contract
            network: Alchemy network slug (e.g. base-mainnet, eth-mainnet)
            page_size: Tokens requested per page (max 100)
            session: Optional requests session
            timeout: Request timeout in seconds
            max_retries: Attempts per page before giving up
        """
        self.api_key = api_key
        self.contract_address = contract_address
        self.network = network
        self.page_size = min(page_size, 100)
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max_retries

    @property
    def endpoint(self) -> str:
        return (
            f"https://{self.network}.g.alchemy.com/nft/v3/{self.api_key}"
            "/getNFTsForContract"
        )

    def __iter__(self) -> Iterator[Item]:
        if not self.api_key:
            raise EnumerationError("ALCHEMY_API_KEY is not set")

        page_key = None
        total = 0
        while True:
            params: Dict[str, Any] = {
                "contractAddress": self.contract_address,
                "withMetadata": "true",
                "limit": self.page_size,
            }
            if page_key:
                params["pageKey"] = page_key

            page = self._get_with_retry(params)
            nfts = page.get("nfts", [])
            total += len(nfts)
            logger.debug(f"Retrieved {len(nfts)} tokens (total: {total})")

            for nft in nfts:
                yield Item(id=str(nft["tokenId"]), token_uri=_token_uri(nft))

            page_key = page.get("pageKey")
            if not page_key:
                break

        logger.info(f"Total tokens found in collection: {total}")

    def _get_with_retry(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET one page with exponential backoff on rate limits and server errors.

        Raises:
            EnumerationError: If the page cannot be fetched
        """
        for attempt in range(self.max_retries):
            try:
                response = self.session.get(
                    self.endpoint, params=params, timeout=self.timeout
                )
            except requests.RequestException as e:
                raise EnumerationError(f"Alchemy request failed: {e}") from e

            if response.status_code in RETRYABLE_STATUS and attempt < self.max_retries - 1:
                wait_time = 2 ** attempt
                logger.warning(
                    f"API error {response.status_code}, retrying in {wait_time}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                time.sleep(wait_time)
                continue

            try:
                response.raise_for_status()
                return response.json()
            except (requests.RequestException, ValueError) as e:
                raise EnumerationError(f"Alchemy request failed: {e}") from e

        raise EnumerationError(f"Max retries ({self.max_retries}) exceeded")


def _token_uri(nft: Dict[str, Any]) -> Optional[str]:
    # v3 returns a string; older payloads nest it as {"raw": ..., "gateway": ...}
    token_uri = nft.get("tokenUri")
    if isinstance(token_uri, dict):
        token_uri = token_uri.get("raw") or token_uri.get("gateway")
    return token_uri or None
