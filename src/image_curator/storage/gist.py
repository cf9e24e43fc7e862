"""
Published membership list kept in a GitHub Gist.

The gist holds a single JSON file mapping decimal token ids to ``true``.
"""

import json
import logging
from typing import Optional

import requests

from image_curator.core.errors import PublishError
from image_curator.core.membership import MembershipSet

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GistListStore:
    """Reads and writes the membership list stored in a gist."""

    def __init__(
        self,
        gist_id: Optional[str],
        token: Optional[str],
        filename: str = "censored-list.json",
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        api_url: str = GITHUB_API_URL,
    ):
        """
        Initialize the gist store.

        Args:
            gist_id: ID of the gist holding the list
            token: GitHub token with gist scope (needed to publish)
            filename: Name of the list file inside the gist
            session: Optional requests session
            timeout: Request timeout in seconds
            api_url: GitHub API base URL
        """
        self.gist_id = gist_id
        self.token = token
        self.filename = filename
        self.session = session or requests.Session()
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")

    @property
    def gist_url(self) -> str:
        return f"{self.api_url}/gists/{self.gist_id}"

    def _headers(self) -> dict:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def fetch(self) -> MembershipSet:
        """
        Fetch the currently published list.

        Any failure, including a missing gist or file, yields an empty set so
        the first run can bootstrap the list.
        """
        logger.info("Fetching current list from Gist...")
        try:
            response = self.session.get(
                self.gist_url, headers=self._headers(), timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()
            if not isinstance(body, dict):
                logger.error("Gist API returned an unexpected body, starting with an empty list.")
                return MembershipSet()
            files = body.get("files") or {}
            if self.filename not in files:
                logger.info(f"Gist has no file named {self.filename}, starting empty.")
                return MembershipSet()
            return MembershipSet.from_document(json.loads(files[self.filename]["content"]))
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.error(
                f"Could not fetch existing Gist, starting with an empty list: {e}"
            )
            return MembershipSet()

    def publish(self, members: MembershipSet) -> None:
        """
        Replace the list file in the gist.

        Raises:
            PublishError: If the gist is not configured or the update fails
        """
        if not self.gist_id or not self.token:
            raise PublishError("GIST_ID and GITHUB_TOKEN are required to publish")

        payload = {
            "files": {
                self.filename: {"content": json.dumps(members.to_document(), indent=2)}
            }
        }
        logger.info("Updating Gist...")
        try:
            response = self.session.patch(
                self.gist_url,
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise PublishError(f"Failed to update gist {self.gist_id}: {e}") from e
        logger.info("Gist updated successfully!")
