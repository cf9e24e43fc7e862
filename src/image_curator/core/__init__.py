"""Core functionality for signature classification and list reconciliation."""

from image_curator.core.classifier import ClassificationResult, classify
from image_curator.core.comparator import hamming_distance
from image_curator.core.coordinator import CuratorSettings, RunCoordinator, RunReport
from image_curator.core.membership import MembershipSet, SetBuilder
from image_curator.core.reconciler import PublishDecision, reconcile
from image_curator.core.signatures import Signature, SignatureStore, load_signature_store

__all__ = [
    "ClassificationResult",
    "CuratorSettings",
    "MembershipSet",
    "PublishDecision",
    "RunCoordinator",
    "RunReport",
    "SetBuilder",
    "Signature",
    "SignatureStore",
    "classify",
    "hamming_distance",
    "load_signature_store",
    "reconcile",
]
