"""Download and cache the raw Wahapedia tables."""

import shutil
from pathlib import Path

import httpx
import structlog

from depot_ingest.common.constants import DEFAULT_SOURCE_URL, SOURCE_TABLES
from depot_ingest.ingestion.json_archive import raw_filename
from depot_ingest.utils.exceptions import SourceFetchError

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def _read_raw(path: Path) -> str:
    # Bytes, so that CRLF row delimiters survive newline translation
    return path.read_bytes().decode("utf-8")


class SourceFetcher:
    """Fetch raw tables over HTTP, reusing a local cache.

    The cache directory holds one file per table. Without force_download, cached files
    are reused and only missing ones are downloaded.
    """

    def __init__(
        self,
        cache_dir: Path,
        base_url: str = DEFAULT_SOURCE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            cache_dir: Directory for the raw tables
            base_url: URL the table file names are appended to
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.cache_dir = cache_dir
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport
        self.logger = logger.bind(component="source_fetcher")
        self.downloaded = 0
        self.reused = 0

    def fetch_all(self, force_download: bool = False) -> dict[str, str]:
        """Return the raw text of every source table.

        Args:
            force_download: Discard the cache before fetching

        Returns:
            Mapping of table key to raw text

        Raises:
            SourceFetchError: If a download fails
        """
        if force_download and self.cache_dir.exists():
            self.logger.info("cache_discarded", cache_dir=str(self.cache_dir))
            shutil.rmtree(self.cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.downloaded = 0
        self.reused = 0
        raw_tables: dict[str, str] = {}

        with httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True,
        ) as client:
            for key, filename in SOURCE_TABLES.items():
                cache_path = self.cache_dir / raw_filename(filename)
                if cache_path.exists():
                    raw_tables[key] = _read_raw(cache_path)
                    self.reused += 1
                    continue

                text = self._download(client, filename)
                cache_path.write_text(text, encoding="utf-8", newline="")
                raw_tables[key] = text
                self.downloaded += 1

        self.logger.info(
            "source_tables_ready",
            downloaded=self.downloaded,
            reused=self.reused,
            cache_dir=str(self.cache_dir),
        )
        return raw_tables

    def load_cached(self) -> dict[str, str]:
        """Return the raw text of every table from the cache only.

        Raises:
            SourceFetchError: If a table is not cached
        """
        raw_tables: dict[str, str] = {}
        for key, filename in SOURCE_TABLES.items():
            cache_path = self.cache_dir / raw_filename(filename)
            if not cache_path.exists():
                raise SourceFetchError(f"Raw table not cached: {cache_path}")
            raw_tables[key] = _read_raw(cache_path)
        return raw_tables

    def _download(self, client: httpx.Client, filename: str) -> str:
        self.logger.info("downloading_table", filename=filename)
        try:
            response = client.get(filename)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SourceFetchError(
                f"Download of {filename} failed with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SourceFetchError(f"Download of {filename} failed: {e}", is_retryable=True) from e

        response.encoding = "utf-8"
        return response.text
