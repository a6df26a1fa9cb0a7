"""Download public conversation share links and save them as Markdown."""

from __future__ import annotations

import argparse
import hashlib
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Literal, Optional, Sequence

from config_loader import (
    ConfigError,
    RuntimeSettings,
    resolve_runtime_settings,
)
from transcripts import (
    DownloadSession,
    RenderedDocument,
    ShareSaverError,
    build_fetcher,
)

OutputFormat = Literal["markdown", "pdf"]
OUTPUT_FORMATS: tuple[OutputFormat, ...] = ("markdown", "pdf")
WriteStatus = Literal["written", "unchanged"]
MAX_NAME_SUFFIX = 1000


@dataclass(slots=True)
class SaveResult:
    """Where a rendered document ended up and whether bytes changed."""

    path: Path
    status: WriteStatus


def _sha256_bytes(data: bytes) -> str:
    digest = hashlib.sha256()
    digest.update(data)
    return digest.hexdigest()


def _sha256_file(path: Path) -> Optional[str]:
    if not path.exists():
        return None
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _candidate_paths(dest_dir: Path, filename: str) -> Iterable[Path]:
    """Yield ``filename`` then ``stem (2).md``, ``stem (3).md``, ..."""

    first = dest_dir / filename
    yield first
    for index in range(2, MAX_NAME_SUFFIX + 1):
        yield first.with_name(f"{first.stem} ({index}){first.suffix}")


def save_document(
    document: RenderedDocument,
    dest_dir: Path,
    *,
    overwrite: bool = False,
) -> SaveResult:
    """Persist ``document`` under ``dest_dir`` without clobbering others.

    Identical content already on disk is left untouched. Differing content
    is only replaced with ``overwrite``; otherwise the next free numbered
    filename is used.
    """

    dest_dir.mkdir(parents=True, exist_ok=True)
    payload = document.text.encode("utf-8")
    expected = _sha256_bytes(payload)

    for path in _candidate_paths(dest_dir, document.filename):
        current = _sha256_file(path)
        if current == expected:
            return SaveResult(path=path, status="unchanged")
        if current is None or overwrite:
            with path.open("wb") as handle:
                handle.write(payload)
            return SaveResult(path=path, status="written")

    raise FileExistsError(
        f"No free filename left for {document.filename} in {dest_dir}"
    )


def read_urls(path: Path) -> Iterable[str]:
    """Yield URLs from a newline-delimited text file, skipping blanks."""

    raw = path.read_text(encoding="utf-8").splitlines()
    for line in raw:
        url = line.strip().strip('"').strip("'")
        if url and not url.startswith("#"):
            yield url


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments for the share downloader."""

    parser = argparse.ArgumentParser(
        description="Save public conversation share links as Markdown.",
    )
    parser.add_argument(
        "urls",
        nargs="*",
        help="Share links such as https://chatgpt.com/share/<id>.",
    )
    parser.add_argument(
        "--urls-file",
        help="Text file containing newline separated share links.",
    )
    parser.add_argument("--config", help="Path to config JSON file.")
    parser.add_argument(
        "--output-dir",
        help="Directory for saved transcripts (defaults to config/cwd).",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="markdown",
        help="Output format. PDF export is not available yet.",
    )
    parser.add_argument(
        "--strategy",
        choices=("api", "browser"),
        help="Fetch via the share JSON endpoint or a rendered page.",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print Markdown to stdout instead of writing files.",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace existing files whose content differs.",
    )
    return parser.parse_args(argv)


def collect_urls(args: argparse.Namespace) -> List[str]:
    """Return CLI URLs followed by any listed in ``--urls-file``."""

    urls: List[str] = list(args.urls)
    if args.urls_file:
        urls_path = Path(args.urls_file)
        if not urls_path.exists():
            raise SystemExit(f"URL list not found: {urls_path}")
        urls.extend(read_urls(urls_path))
    return urls


def process_share_urls(
    urls: Sequence[str],
    *,
    settings: RuntimeSettings,
    overwrite: bool = False,
    to_stdout: bool = False,
    session: Optional[DownloadSession] = None,
) -> int:
    """Download each URL in turn and return the number of failures."""

    owned_fetcher = None
    if session is None:
        owned_fetcher = build_fetcher(settings.fetch)
        session = DownloadSession(owned_fetcher, link_settings=settings.link)
    output_dir = Path(settings.output_dir)
    failures = 0
    try:
        for url in urls:
            try:
                document = session.start(url).result()
            except ShareSaverError as exc:
                failures += 1
                print(f"⚠️ {url}: {exc}", file=sys.stderr)
                continue

            if to_stdout:
                sys.stdout.write(document.text)
                continue

            try:
                result = save_document(
                    document, output_dir, overwrite=overwrite
                )
            except OSError as exc:
                failures += 1
                print(f"⚠️ Unable to save {url}: {exc}", file=sys.stderr)
                continue

            if result.status == "unchanged":
                print(f"⏭️ Transcript unchanged: {result.path}")
            else:
                print(f"✅ Transcript written: {result.path}")
    finally:
        if owned_fetcher is not None:
            session.close()
            close = getattr(owned_fetcher, "close", None)
            if close is not None:
                close()
    return failures


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for saving share links."""

    args = parse_args(argv)
    if args.format == "pdf":
        print("⚠️ PDF export is not available yet.", file=sys.stderr)
        return 2

    urls = collect_urls(args)
    if not urls:
        print("⚠️ No share links given.", file=sys.stderr)
        return 2

    try:
        settings = resolve_runtime_settings(
            config_path=args.config,
            output_dir=args.output_dir,
            strategy=args.strategy,
        )
    except ConfigError as exc:
        raise SystemExit(f"Config error: {exc}") from exc

    failures = process_share_urls(
        urls,
        settings=settings,
        overwrite=args.overwrite,
        to_stdout=args.stdout,
    )
    if failures:
        print(f"⚠️ {failures} of {len(urls)} share links failed.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
