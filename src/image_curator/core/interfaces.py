"""Contracts for the collaborators a curator run depends on."""

from dataclasses import dataclass
from typing import Iterator, Optional, Protocol

from image_curator.core.membership import MembershipSet
from image_curator.core.signatures import Signature


@dataclass(frozen=True)
class Item:
    """A collection token, as enumerated from the registry."""

    id: str
    token_uri: Optional[str] = None


class Enumerator(Protocol):
    def __iter__(self) -> Iterator[Item]: ...


class MetadataResolver(Protocol):
    def resolve(self, token_uri: Optional[str]) -> str: ...


class SignatureComputer(Protocol):
    def download(self, image_url: str) -> bytes: ...

    def compute_from_bytes(self, data: bytes) -> Signature: ...


class ImageCache(Protocol):
    def exists(self, item_id: str) -> bool: ...

    def save(self, item_id: str, image_bytes: bytes) -> None: ...


class RemoteListStore(Protocol):
    def fetch(self) -> MembershipSet: ...

    def publish(self, members: MembershipSet) -> None: ...
