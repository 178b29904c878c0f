"""
Target card resolution.

Decides which Yoto card a playlist is synced to. The first applicable rule
wins:

    1. Explicit hint (--playlist NAME): fuzzy-match the name against the
       account's cards.
         - no match: offer to create a card (declining cancels the sync)
         - one match: use it
         - several: ask the operator to pick one of them
    2. Remembered association for this playlist: offer to reuse it.
       Declining, or a card that no longer exists, falls through.
    3. Interactive: pick any card, or create a new one named after the
       playlist by default.
"""

from yoto_sync.core.exceptions import UserCancelled
from yoto_sync.core.logger import get_logger
from yoto_sync.matching.fuzzy import DEFAULT_THRESHOLD, match_all
from yoto_sync.sync.interfaces import AssociationRepository, CardClient, Prompt
from yoto_sync.sync.models import Container, ResolvedTarget, SourcePlaylist


logger = get_logger(__name__)

CREATE_NEW_LABEL = "Create new playlist"


class TargetResolver:
    """
    Resolves the card a sync run writes to.

    Attributes:
        cards: Card service client.
        associations: Remembered playlist → card links (may be None).
        prompt: Interactive prompt.
        threshold: Fuzzy threshold for matching the hint against card names.
    """

    def __init__(
        self,
        cards: CardClient,
        associations: AssociationRepository | None,
        prompt: Prompt,
        threshold: float = DEFAULT_THRESHOLD
    ) -> None:
        self.cards = cards
        self.associations = associations
        self.prompt = prompt
        self.threshold = threshold
        self._containers: list[Container] | None = None

    def resolve(self, source: SourcePlaylist, hint: str | None = None) -> ResolvedTarget:
        """
        Determine the target card for source.

        Args:
            source: The playlist being synced.
            hint: Optional card name supplied by the operator.

        Returns:
            ResolvedTarget, with is_newly_created set if a card was created.

        Raises:
            UserCancelled: If the operator declines creating the hinted card.
            YotoApiError: If listing or creating cards fails.
        """
        self._containers = None

        if hint:
            return self._resolve_from_hint(hint, source)

        remembered = self._resolve_from_association(source)
        if remembered is not None:
            return remembered

        return self._resolve_interactively(source)

    def _list_containers(self) -> list[Container]:
        if self._containers is None:
            self._containers = self.cards.list_containers()
        return self._containers

    def _resolve_from_hint(self, hint: str, source: SourcePlaylist) -> ResolvedTarget:
        matches = match_all(
            hint,
            self._list_containers(),
            threshold=self.threshold,
            key=lambda container: container.name
        )

        if not matches:
            logger.info(f'No card matches "{hint}"')
            if not self.prompt.confirm(f'No card matches "{hint}". Create a new card?', default=True):
                raise UserCancelled(details={"hint": hint})
            return self._create(default_name=source.title)

        if len(matches) == 1:
            container = matches[0]
            logger.info(f'Using card "{container.name}" ({container.id})')
            return ResolvedTarget(target_id=container.id, target_name=container.name)

        container = self.prompt.select_one(
            f'Several cards match "{hint}". Which one?',
            [(f"{c.name} ({c.id})", c) for c in matches]
        )
        return ResolvedTarget(target_id=container.id, target_name=container.name)

    def _resolve_from_association(self, source: SourcePlaylist) -> ResolvedTarget | None:
        if self.associations is None:
            return None

        association = self.associations.get(source.id)
        if association is None:
            return None

        container = next(
            (c for c in self._list_containers() if c.id == association.target_id),
            None
        )
        if container is None:
            logger.warning(
                f'Previously synced card "{association.target_name}" '
                f"({association.target_id}) no longer exists"
            )
            return None

        if self.prompt.confirm(f'Sync to "{container.name}" again?', default=True):
            return ResolvedTarget(target_id=container.id, target_name=container.name)

        return None

    def _resolve_interactively(self, source: SourcePlaylist) -> ResolvedTarget:
        choices: list[tuple[str, Container | None]] = [(CREATE_NEW_LABEL, None)]
        choices.extend((f"{c.name} ({c.id})", c) for c in self._list_containers())

        container = self.prompt.select_one("Select the card to sync to", choices)
        if container is None:
            return self._create(default_name=source.title)

        return ResolvedTarget(target_id=container.id, target_name=container.name)

    def _create(self, default_name: str) -> ResolvedTarget:
        name = self.prompt.free_text("Card name", default=default_name).strip() or default_name
        container = self.cards.create_container(name)
        logger.info(f'Created card "{container.name}" ({container.id})')
        return ResolvedTarget(
            target_id=container.id,
            target_name=container.name,
            is_newly_created=True
        )
