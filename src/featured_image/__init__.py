"""Feature-image discovery and thumbnail maintenance for markdown vaults."""

from featured_image.cardlink import CardLinkProcessor, FenceState
from featured_image.collaborators import Collaborators
from featured_image.collector import ReferenceCollector
from featured_image.config import Settings, load_settings
from featured_image.grammar import LinkGrammar, get_video_id
from featured_image.index import VaultIndex
from featured_image.maintenance import AssetCategory, AssetGarbageCollector, SweepReport
from featured_image.note import Note
from featured_image.parser import parse_note
from featured_image.resolver import FeatureReference, FeatureResolver

__all__ = [
    "AssetCategory",
    "AssetGarbageCollector",
    "CardLinkProcessor",
    "Collaborators",
    "FeatureReference",
    "FeatureResolver",
    "FenceState",
    "LinkGrammar",
    "Note",
    "ReferenceCollector",
    "Settings",
    "SweepReport",
    "VaultIndex",
    "get_video_id",
    "load_settings",
    "parse_note",
]
