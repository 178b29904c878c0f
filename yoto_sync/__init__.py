"""
yoto-sync: Sync YouTube playlists to Yoto cards.

This package mirrors a YouTube playlist onto the chapters of a Yoto MYO
card: new videos are downloaded, uploaded and transcoded; chapters that are
still in the playlist are kept as they are (icons included); chapters that
left the playlist are removed. Nothing is written before the operator
confirms the plan.

Architecture:
    A sync run goes through these stages (yoto_sync.sync.orchestrator):

    PLANNING
        - Read the playlist entries (youtube/catalog.py)
        - Resolve the target card: --playlist hint, remembered link, or
          interactive choice (sync/resolver.py)
        - Read the card's chapters and classify every item as
          KEEP / ADD / REMOVE with fuzzy title matching (sync/planner.py)

    CONFIRMING
        - Show the plan and ask for confirmation

    FETCHING / PUBLISHING
        - Download each new video with yt-dlp (youtube/fetcher.py)
        - Upload it to Yoto and wait for transcoding (yoto/publisher.py)

    COMMITTING / PERSISTING
        - Write the new chapter list in one request (yoto/client.py)
        - Remember the playlist → card link (core/associations.py)

Modules:
    core/       - Configuration, logging, exceptions, association store, progress
    matching/   - Fuzzy title matching
    sync/       - Planner, resolver, orchestrator, prompts
    youtube/    - Playlist listing and audio download (yt-dlp)
    yoto/       - Yoto API client, uploads, token storage
    cli.py      - Command-line interface

Usage:
    Command Line:
        yoto login
        yoto sync "https://www.youtube.com/playlist?list=PL..."
        yoto sync "https://www.youtube.com/playlist?list=PL..." -p "Bedtime"

    Python API:
        from yoto_sync.core import load_config
        from yoto_sync.core.associations import AssociationStore
        from yoto_sync.sync import SyncOrchestrator
        from yoto_sync.sync.prompt import ClickPrompt
        from yoto_sync.yoto import YotoClient, YotoPublisher, require_token
        from yoto_sync.youtube import YouTubeCatalog, YouTubeFetcher

        config = load_config()
        client = YotoClient(require_token(config.storage.auth_file), config.yoto)
        with AssociationStore(config.storage.database_file) as store:
            result = SyncOrchestrator(
                catalog=YouTubeCatalog(),
                cards=client,
                fetcher=YouTubeFetcher(config.download),
                publisher=YotoPublisher(client, config.publish),
                associations=store,
                prompt=ClickPrompt(),
            ).run(playlist_url)

Requirements:
    - Python 3.10+
    - FFmpeg (for audio extraction)
"""

__version__ = "0.3.0"
__author__ = "yoto-sync contributors"

__all__ = ["__version__"]
