"""
Repository pattern for usage log access.

Reads usage logs in chronological file order and turns them into
deduplicated, costed entries.
"""

import logging
from contextlib import nullcontext
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

from cc_usage.config.loader import CostMode
from cc_usage.core.cost import calculate_cost_for_entry
from cc_usage.core.dates import format_date
from cc_usage.core.dedup import Deduplicator
from cc_usage.core.pricing import PricingFetcher
from .discovery import find_usage_files, session_info_from_path, sort_files_by_timestamp
from .models import UsageEntry, UsageRecord
from .schema import parse_usage_line

logger = logging.getLogger(__name__)


class UsageRepository:
    """Read-only access to the usage logs under one data directory.

    Log files are never modified. Each call to ``load_entries`` is an
    independent run with its own deduplication state and pricing source.
    """

    def __init__(
        self,
        root_path: Union[str, Path],
        fetcher_factory: Optional[Callable[..., PricingFetcher]] = None,
        max_workers: Optional[int] = None
    ):
        """Initialize the repository with a data directory.

        Args:
            root_path: Data root; logs live under ``{root_path}/projects``
            fetcher_factory: Builds the pricing source for one run
                (defaults to PricingFetcher)
            max_workers: Thread pool size for the timestamp probe
        """
        self.root_path = Path(root_path)
        self.projects_dir = self.root_path / "projects"
        self.fetcher_factory = fetcher_factory
        self.max_workers = max_workers

    def list_files(self) -> List[Path]:
        """All usage logs, oldest first."""
        files = find_usage_files(self.projects_dir)
        return sort_files_by_timestamp(files, max_workers=self.max_workers)

    def iter_records(self, file_path: Path) -> Iterator[UsageRecord]:
        """Yield the valid records of one file in line order.

        Undecodable bytes are replaced so only the affected line is
        rejected; a file that cannot be opened yields nothing.
        """
        try:
            with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
                lines = f.readlines()
        except OSError as e:
            logger.debug("Skipping unreadable usage file %s: %s", file_path, e)
            return

        for line in lines:
            record = parse_usage_line(line)
            if record is not None:
                yield record

    def load_entries(
        self,
        mode: CostMode = CostMode.AUTO,
        offline: bool = False
    ) -> List[UsageEntry]:
        """Load every deduplicated, costed entry.

        The pricing source is created once for the run and released when
        the run ends, whether or not it succeeds. DISPLAY mode never creates
        one, so it works without network access.

        Args:
            mode: Cost mode
            offline: Use the bundled pricing snapshot

        Returns:
            Entries in processing order (file order, then line order)
        """
        mode = CostMode(mode)
        files = self.list_files()
        if not files:
            return []

        if mode == CostMode.DISPLAY:
            fetcher_context = nullcontext(None)
        else:
            factory = self.fetcher_factory or PricingFetcher
            fetcher_context = factory(offline=offline)

        deduplicator = Deduplicator()
        entries: List[UsageEntry] = []
        skipped = 0

        with fetcher_context as fetcher:
            for file_path in files:
                project_path, session_id = session_info_from_path(self.projects_dir, file_path)
                for record in self.iter_records(file_path):
                    if not deduplicator.accept(record):
                        skipped += 1
                        continue
                    entries.append(UsageEntry(
                        record=record,
                        cost=calculate_cost_for_entry(record, mode, fetcher),
                        date=format_date(record.timestamp),
                        session_id=session_id,
                        project_path=project_path,
                    ))

        logger.debug(
            "Loaded %d entries from %d files (%d duplicates skipped)",
            len(entries), len(files), skipped
        )
        return entries
