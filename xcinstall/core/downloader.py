"""Resumable artifact downloads."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from http.cookiejar import MozillaCookieJar
from pathlib import Path
from urllib.parse import urlparse

import httpx
import structlog
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from xcinstall import __version__
from xcinstall.core.config import AppConfig

logger = structlog.get_logger()

CHUNK_SIZE = 1024 * 1024


@dataclass
class DownloadResult:
    """Result of a single download.

    Attributes:
        path: Destination file, or None on failure
        error: Error description if the download failed
        resumed_from: Byte offset the transfer continued from
        bytes_written: Bytes written during this invocation
    """

    path: Path | None
    error: str | None = None
    resumed_from: int = 0
    bytes_written: int = 0

    @property
    def ok(self) -> bool:
        return self.path is not None


class Downloader:
    """Fetch one artifact into a directory, continuing partial files.

    Each call uses its own HTTP client. When a cookie string is given it is
    sent with the request and response cookies are kept in a cookie jar file
    unique to the call, removed again before fetch() returns.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        console: Console | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize downloader.

        Args:
            config: Application configuration
            console: Console used for progress output
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or AppConfig()
        self.console = console or Console(stderr=True)
        self._transport = transport

    def fetch(
        self,
        url: str,
        destination_dir: Path | None = None,
        cookie: str | None = None,
        output: str | Path | None = None,
        show_progress: bool = True,
    ) -> DownloadResult:
        """Download a URL, resuming an existing partial file.

        Args:
            url: Artifact URL
            destination_dir: Target directory, defaults to the cache directory
            cookie: Cookie header value to authenticate the transfer
            output: File name, defaults to the URL path basename
            show_progress: Show a progress bar

        Returns:
            DownloadResult with the destination path, or an error on failure
        """
        directory = destination_dir or self.config.cache_dir
        name = str(output) if output else Path(urlparse(url).path).name
        destination = directory / name
        directory.mkdir(parents=True, exist_ok=True)

        cookie_file: Path | None = None
        if cookie is not None:
            fd, cookie_name = tempfile.mkstemp(prefix="xcinstall-cookies-", suffix=".txt", dir=self.config.temp_dir)
            cookie_file = Path(cookie_name)
            with open(fd, "w") as f:
                f.write("# Netscape HTTP Cookie File\n")

        try:
            return self._transfer(url, destination, cookie, cookie_file, show_progress)
        except (httpx.HTTPError, OSError) as e:
            logger.error("download_failed", url=url, error=str(e))
            return DownloadResult(path=None, error=str(e))
        finally:
            if cookie_file is not None:
                cookie_file.unlink(missing_ok=True)

    def _transfer(
        self,
        url: str,
        destination: Path,
        cookie: str | None,
        cookie_file: Path | None,
        show_progress: bool,
    ) -> DownloadResult:
        offset = destination.stat().st_size if destination.exists() else 0
        headers = {"User-Agent": f"xcinstall/{__version__}"}
        if offset > 0:
            headers["Range"] = f"bytes={offset}-"
        if cookie:
            headers["Cookie"] = cookie

        jar = MozillaCookieJar(str(cookie_file)) if cookie_file is not None else None
        client = httpx.Client(
            follow_redirects=True,
            timeout=httpx.Timeout(self.config.request_timeout, read=None),
            cookies=jar,
            transport=self._transport,
        )

        with client, client.stream("GET", url, headers=headers) as response:
            if jar is not None:
                jar.save(ignore_discard=True, ignore_expires=True)

            if offset > 0 and response.status_code == 416:
                logger.info("download_already_complete", path=str(destination), size=offset)
                return DownloadResult(path=destination, resumed_from=offset)

            response.raise_for_status()

            if response.status_code == 206:
                mode = "ab"
                logger.info("download_resumed", path=str(destination), offset=offset)
            else:
                if offset > 0:
                    logger.info("download_restarted", path=str(destination), discarded=offset)
                offset = 0
                mode = "wb"

            length = response.headers.get("Content-Length")
            total = offset + int(length) if length and length.isdigit() else None
            written = 0

            with open(destination, mode) as f:
                if show_progress:
                    with Progress(
                        TextColumn("[bold blue]{task.description}"),
                        BarColumn(),
                        DownloadColumn(),
                        TransferSpeedColumn(),
                        TimeRemainingColumn(),
                        console=self.console,
                    ) as progress:
                        task = progress.add_task(destination.name, total=total, completed=offset)
                        for chunk in response.iter_bytes(CHUNK_SIZE):
                            f.write(chunk)
                            written += len(chunk)
                            progress.update(task, advance=len(chunk))
                else:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        f.write(chunk)
                        written += len(chunk)

        logger.info("download_complete", path=str(destination), bytes=written, resumed_from=offset)
        return DownloadResult(path=destination, resumed_from=offset, bytes_written=written)
