"""Decide whether a rebuilt membership set needs publishing."""

from dataclasses import dataclass
from typing import Tuple

from image_curator.core.membership import MembershipSet


@dataclass(frozen=True)
class PublishDecision:
    """Result of comparing the previous and the rebuilt membership set."""

    changed: bool
    previous_ids: Tuple[str, ...]
    new_ids: Tuple[str, ...]

    @property
    def added(self) -> Tuple[str, ...]:
        previous = set(self.previous_ids)
        return tuple(i for i in self.new_ids if i not in previous)

    @property
    def removed(self) -> Tuple[str, ...]:
        new = set(self.new_ids)
        return tuple(i for i in self.previous_ids if i not in new)


def reconcile(previous: MembershipSet, current: MembershipSet) -> PublishDecision:
    """
    Compare two membership sets by their lexically sorted ids.

    Any addition or removal counts as a change; insertion order never does.

    Args:
        previous: The currently published set
        current: The set rebuilt by this run

    Returns:
        PublishDecision with both sorted id sequences
    """
    previous_ids = tuple(sorted(str(i) for i in previous))
    new_ids = tuple(sorted(str(i) for i in current))
    return PublishDecision(
        changed=previous_ids != new_ids,
        previous_ids=previous_ids,
        new_ids=new_ids,
    )
