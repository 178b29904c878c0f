"""
Sync pipeline for yoto-sync.

This module runs one reconciliation of a YouTube playlist with a Yoto card,
as a linear state machine:

    PLANNING → CONFIRMING → FETCHING → PUBLISHING → COMMITTING → PERSISTING → DONE
                   │
                   ├→ DONE (already in sync, no prompt)
                   └→ CANCELLED (operator declined)

    any failure → FAILED
    every exit  → CLEANUP (temporary workspace removed)

Failure Semantics:
    - Nothing is written to the card before COMMITTING. A failed download
      or upload aborts the batch and the card is left untouched.
    - The card is written with a single replace call, so it is either fully
      updated or not at all.
    - The association is saved only after a successful commit. Failing to
      save it is logged and does not fail the run.

Usage:
    orchestrator = SyncOrchestrator(
        catalog=YouTubeCatalog(),
        cards=client,
        fetcher=YouTubeFetcher(config.download),
        publisher=YotoPublisher(client, config.publish),
        associations=store,
        prompt=ClickPrompt(),
        renderer=RichPlanRenderer(),
    )
    result = orchestrator.run("https://www.youtube.com/playlist?list=PL...")
"""

import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, TypeVar

from yoto_sync.core.exceptions import (
    CatalogError,
    CommitFailed,
    DatabaseError,
    FetchFailed,
    PersistFailed,
    PlanningError,
    PublishFailed,
    UserCancelled,
    YotoApiError,
    YotoSyncError,
)
from yoto_sync.core.logger import get_logger, log_sync_failure
from yoto_sync.core.progress import FAILED, OK, REUSED, TransferProgress
from yoto_sync.matching.fuzzy import DEFAULT_THRESHOLD
from yoto_sync.sync.interfaces import (
    AssociationRepository,
    CardClient,
    CatalogClient,
    MediaFetcher,
    MediaPublisher,
    PlanRenderer,
    Prompt,
)
from yoto_sync.sync.models import (
    Association,
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
from yoto_sync.sync.planner import generate_plan
from yoto_sync.sync.resolver import TargetResolver


logger = get_logger(__name__)

R = TypeVar("R")


class SyncState(Enum):
    """States of a sync run."""
    PLANNING = "planning"
    CONFIRMING = "confirming"
    FETCHING = "fetching"
    PUBLISHING = "publishing"
    COMMITTING = "committing"
    PERSISTING = "persisting"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"
    CLEANUP = "cleanup"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def chapter_key(index: int, used: set[str]) -> str:
    """
    Two-digit key for a new chapter at 0-based index.

    Bumped to the next free value if a kept chapter already uses it.
    """
    candidate = index
    while f"{candidate:02d}" in used:
        candidate += 1
    return f"{candidate:02d}"


class SyncOrchestrator:
    """
    Runs sync operations between a playlist catalog and a card service.

    Attributes:
        catalog: Reads the source playlist.
        cards: Reads and writes cards.
        fetcher: Downloads playlist entries into the workspace.
        publisher: Uploads downloaded files and waits for transcoding.
        associations: Remembers which card each playlist was synced to.
        prompt: Confirmation and selection prompts.
        renderer: Displays the plan before confirmation (optional).
        threshold: Fuzzy threshold for titles and card names.
        threads: Parallel downloads/uploads. 1 = sequential.
        workspace_parent: Where temporary workspaces are created
                          (None = system temp directory).
        show_progress: Display rich progress bars during transfers.
    """

    def __init__(
        self,
        catalog: CatalogClient,
        cards: CardClient,
        fetcher: MediaFetcher,
        publisher: MediaPublisher,
        associations: AssociationRepository,
        prompt: Prompt,
        renderer: PlanRenderer | None = None,
        threshold: float = DEFAULT_THRESHOLD,
        threads: int = 1,
        workspace_parent: Path | None = None,
        show_progress: bool = False,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.catalog = catalog
        self.cards = cards
        self.fetcher = fetcher
        self.publisher = publisher
        self.associations = associations
        self.prompt = prompt
        self.renderer = renderer
        self.threshold = threshold
        self.threads = max(1, threads)
        self.workspace_parent = workspace_parent
        self.show_progress = show_progress
        self._clock = clock
        self._resolver = TargetResolver(cards, associations, prompt, threshold=threshold)

    def run(self, reference: str, hint: str | None = None) -> SyncResult:
        """
        Sync the playlist at reference to a card.

        Args:
            reference: Playlist URL or ID.
            hint: Optional card name to sync to.

        Returns:
            SyncResult with outcome SYNCED, ALREADY_IN_SYNC or CANCELLED.

        Raises:
            ValidationError: If reference is not a playlist URL or ID.
            PlanningError: If the playlist or the card could not be read.
            FetchFailed: If a new entry could not be downloaded.
            PublishFailed: If a download could not be uploaded
                           (PublishTimeout if transcoding never finished).
            CommitFailed: If the card could not be written.
        """
        result = SyncResult(outcome=SyncOutcome.CANCELLED)

        if self.workspace_parent is not None:
            self.workspace_parent.mkdir(parents=True, exist_ok=True)
        workspace = Path(tempfile.mkdtemp(prefix="yoto-sync-", dir=self.workspace_parent))
        logger.debug(f"Workspace: {workspace}")

        try:
            self._enter(result, SyncState.PLANNING)
            self._plan(reference, hint, result)
            plan = result.plan

            self._enter(result, SyncState.CONFIRMING)
            if not plan.has_changes:
                logger.info(f'"{result.target.target_name}" is already in sync')
                result.outcome = SyncOutcome.ALREADY_IN_SYNC
                self._enter(result, SyncState.DONE)
                return result

            if self.renderer is not None:
                self.renderer(plan, result.source, result.target.target_name)
            if not self.prompt.confirm("Apply these changes?", default=True):
                raise UserCancelled()

            additions = self._unique_additions(plan)

            self._enter(result, SyncState.FETCHING)
            files = self._fetch_all(additions, workspace)

            self._enter(result, SyncState.PUBLISHING)
            assets = self._publish_all(additions, files)

            self._enter(result, SyncState.COMMITTING)
            self._commit(result.target, plan, assets)
            result.outcome = SyncOutcome.SYNCED

            self._enter(result, SyncState.PERSISTING)
            result.association_saved = self._persist(result.source, result.target)

            self._enter(result, SyncState.DONE)
            logger.info(
                f'Synced "{result.source.title}" to "{result.target.target_name}": '
                f"{plan.keep_count} kept, {plan.add_count} added, {plan.remove_count} removed"
            )
            return result

        except UserCancelled:
            logger.info("Sync cancelled, no changes made")
            result.outcome = SyncOutcome.CANCELLED
            self._enter(result, SyncState.CANCELLED)
            return result

        except Exception:
            self._enter(result, SyncState.FAILED)
            raise

        finally:
            self._enter(result, SyncState.CLEANUP)
            self._cleanup_workspace(workspace)

    # =========================================================================
    # States
    # =========================================================================

    def _enter(self, result: SyncResult, state: SyncState) -> None:
        result.states.append(state.name)
        logger.debug(f"State: {state.name}")

    def _plan(self, reference: str, hint: str | None, result: SyncResult) -> None:
        try:
            source = self.catalog.get_playlist(reference)
            result.source = source
            logger.info(f'Playlist "{source.title}": {len(source.items)} items')

            target = self._resolver.resolve(source, hint=hint)
            result.target = target

            details = self.cards.get_container(target.target_id)
        except (CatalogError, YotoApiError, DatabaseError) as e:
            raise PlanningError(
                f"Could not build sync plan: {e.message}",
                details={"reference": reference, "original_error": str(e)}
            ) from e

        result.plan = generate_plan(source.items, details.items, threshold=self.threshold)
        logger.debug(
            f"Plan for {self._describe(details)}: keep={result.plan.keep_count} "
            f"add={result.plan.add_count} remove={result.plan.remove_count}"
        )

    def _fetch_all(self, additions: list[SyncPlanItem], workspace: Path) -> dict[str, Path]:
        return self._run_batch(
            additions,
            lambda source: self._fetch_one(source, workspace),
            verb="Downloading",
            progress=TransferProgress.for_fetch(len(additions)) if self.show_progress else None,
        )

    def _publish_all(
        self,
        additions: list[SyncPlanItem],
        files: dict[str, Path]
    ) -> dict[str, PublishedAsset]:
        return self._run_batch(
            additions,
            lambda source: self._publish_one(source, files[source.id]),
            verb="Uploading",
            progress=TransferProgress.for_publish(len(additions)) if self.show_progress else None,
        )

    def _commit(
        self,
        target: ResolvedTarget,
        plan: SyncPlan,
        assets: dict[str, PublishedAsset]
    ) -> None:
        try:
            chapters = self._build_chapters(plan, assets)
            self.cards.replace_items(target.target_id, chapters)
        except Exception as e:
            raise CommitFailed(
                f'Failed to update card "{target.target_name}": {e}',
                details={"card_id": target.target_id, "original_error": str(e)}
            ) from e
        logger.info(f'Updated card "{target.target_name}" with {len(chapters)} chapters')

    def _persist(self, source: SourcePlaylist, target: ResolvedTarget) -> bool:
        association = Association(
            source_id=source.id,
            target_id=target.target_id,
            target_name=target.target_name,
            source_name=source.title,
            last_synced_at=self._clock(),
        )
        try:
            self.associations.upsert(association)
        except YotoSyncError as e:
            failure = e if isinstance(e, PersistFailed) else PersistFailed(
                e.message, details={"source_id": source.id, "original_error": str(e)}
            )
            logger.error(f"Card updated, but the playlist link was not saved: {failure.message}")
            logger.debug(f"Details: {failure.details}")
            return False
        return True

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _describe(details: ContainerDetails) -> str:
        return f'"{details.name}" ({len(details.items)} chapters)'

    @staticmethod
    def _unique_additions(plan: SyncPlan) -> list[SyncPlanItem]:
        """ADD items in source order, one per distinct source ID."""
        seen: set[str] = set()
        unique = []
        for item in plan.items_to_add():
            if item.source.id not in seen:
                seen.add(item.source.id)
                unique.append(item)
        return unique

    def _build_chapters(
        self,
        plan: SyncPlan,
        assets: dict[str, PublishedAsset]
    ) -> list[TargetItem]:
        """Kept chapters unchanged, new chapters from their assets, in position order."""
        ordered = plan.positional_items()
        used = {item.target.key for item in ordered if item.action is SyncAction.KEEP}

        chapters = []
        for item in ordered:
            if item.action is SyncAction.KEEP:
                chapters.append(item.target)
                continue
            key = chapter_key(item.position - 1, used)
            used.add(key)
            chapters.append(self.cards.new_item(item.title, assets[item.source.id], key))
        return chapters

    def _fetch_one(self, source: SourceItem, workspace: Path) -> Path:
        try:
            return self.fetcher.fetch(source, workspace)
        except FetchFailed as e:
            if e.item is None:
                e.item = source
            log_sync_failure(logger, "download", source.title, e.message, source.locator)
            raise
        except Exception as e:
            log_sync_failure(logger, "download", source.title, str(e), source.locator)
            raise FetchFailed(
                f"Download failed for '{source.title}': {e}",
                details={"source_id": source.id, "original_error": str(e)},
                item=source
            ) from e

    def _publish_one(self, source: SourceItem, path: Path) -> PublishedAsset:
        try:
            asset = self.publisher.publish(path)
        except PublishFailed as e:
            if e.item is None:
                e.item = source
            log_sync_failure(logger, "upload", source.title, e.message, source.locator)
            raise
        except Exception as e:
            log_sync_failure(logger, "upload", source.title, str(e), source.locator)
            raise PublishFailed(
                f"Upload failed for '{source.title}': {e}",
                details={"source_id": source.id, "original_error": str(e)},
                item=source
            ) from e

        if asset.already_published:
            logger.debug(f"Already on Yoto, upload skipped: {source.title}")
        return asset

    def _run_batch(
        self,
        items: list[SyncPlanItem],
        work: Callable[[SourceItem], R],
        verb: str,
        progress: TransferProgress | None = None
    ) -> dict[str, R]:
        """
        Apply work to the source of every item, keyed by source ID.

        Sequential when threads == 1, otherwise on a thread pool. The first
        failure cancels the work not yet started and is re-raised.
        """
        results: dict[str, R] = {}
        if not items:
            return results

        if progress is not None:
            progress.start()
        try:
            if self.threads == 1 or len(items) == 1:
                for number, item in enumerate(items, start=1):
                    logger.info(f"[{number}/{len(items)}] {verb}: {item.title}")
                    results[item.source.id] = self._tracked(work, item.source, progress)
                return results

            logger.info(f"{verb} {len(items)} items with {self.threads} threads")
            with ThreadPoolExecutor(max_workers=self.threads) as executor:
                future_to_item = {
                    executor.submit(work, item.source): item
                    for item in items
                }
                try:
                    for future in as_completed(future_to_item):
                        item = future_to_item[future]
                        try:
                            results[item.source.id] = future.result()
                        except Exception:
                            self._update_progress(progress, None)
                            raise
                        self._update_progress(progress, results[item.source.id])
                except BaseException:
                    for pending in future_to_item:
                        pending.cancel()
                    raise
            return results
        finally:
            if progress is not None:
                progress.stop()

    def _tracked(
        self,
        work: Callable[[SourceItem], R],
        source: SourceItem,
        progress: TransferProgress | None
    ) -> R:
        try:
            value = work(source)
        except Exception:
            self._update_progress(progress, None)
            raise
        self._update_progress(progress, value)
        return value

    @staticmethod
    def _update_progress(progress: TransferProgress | None, value) -> None:
        if progress is None:
            return
        if value is None:
            progress.record(FAILED)
        elif getattr(value, "already_published", False):
            progress.record(REUSED)
        else:
            progress.record(OK)

    def _cleanup_workspace(self, workspace: Path) -> None:
        try:
            if workspace.exists():
                shutil.rmtree(workspace)
        except OSError as e:
            logger.warning(f"Failed to remove temporary workspace {workspace}: {e}")
