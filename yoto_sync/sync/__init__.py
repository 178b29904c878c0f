"""
Reconciliation engine for yoto-sync.

This package compares a YouTube playlist with a Yoto card and applies the
difference:
    - models: Dataclasses shared by every stage
    - planner: KEEP/ADD/REMOVE classification (pure)
    - resolver: Which card to sync to
    - orchestrator: The sync state machine
    - prompt / render: Terminal interaction

Usage:
    from yoto_sync.sync import SyncOrchestrator, generate_plan
"""

from yoto_sync.sync.models import (
    Association,
    Container,
    ContainerDetails,
    PublishedAsset,
    ResolvedTarget,
    SourceItem,
    SourcePlaylist,
    SyncAction,
    SyncOutcome,
    SyncPlan,
    SyncPlanItem,
    SyncResult,
    TargetItem,
)
from yoto_sync.sync.orchestrator import SyncOrchestrator, SyncState
from yoto_sync.sync.planner import generate_plan
from yoto_sync.sync.resolver import TargetResolver

__all__ = [
    # Models
    "Association",
    "Container",
    "ContainerDetails",
    "PublishedAsset",
    "ResolvedTarget",
    "SourceItem",
    "SourcePlaylist",
    "SyncAction",
    "SyncOutcome",
    "SyncPlan",
    "SyncPlanItem",
    "SyncResult",
    "TargetItem",
    # Engine
    "generate_plan",
    "TargetResolver",
    "SyncOrchestrator",
    "SyncState",
]
