"""Command-line upload client for the colorize endpoint.

Mirrors the browser upload screen: pick one blueprint, submit it, show both
URLs and optionally download the images. After a failed submit the selected
file is kept so the same blueprint can be retried.
"""

import argparse
import mimetypes
import sys
from enum import Enum
from pathlib import Path

import httpx
from loguru import logger

from api.config import settings
from api.models.colorize import ColorizeResult


class SessionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    RESULT = "result"


class SelectedFile:
    def __init__(self, path: Path):
        self.path = path
        self.content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        self.preview = path.resolve().as_uri()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return "Colorization failed"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return "Colorization failed"


class UploadSession:
    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        http_client: httpx.Client | None = None,
        timeout: float = 180.0,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self._http = http_client or httpx.Client(timeout=timeout)
        self.state = SessionState.IDLE
        self.selected: SelectedFile | None = None
        self.result: ColorizeResult | None = None
        self.error: str | None = None

    def select_file(self, path: str | Path) -> str:
        """Select a file for upload and return its local preview reference."""
        self.selected = SelectedFile(Path(path))
        self.result = None
        self.error = None
        self.state = SessionState.IDLE
        logger.debug("File selected path={} content_type={}", str(self.selected.path), self.selected.content_type)
        return self.selected.preview

    def submit(self) -> ColorizeResult | None:
        if self.selected is None or self.state == SessionState.SUBMITTING:
            logger.warning("Submit ignored state={} selected={}", self.state.value, self.selected is not None)
            return None

        self.state = SessionState.SUBMITTING
        self.error = None
        selected = self.selected
        headers = {"apikey": self.api_key} if self.api_key else {}
        try:
            files = {"file": (selected.path.name, selected.path.read_bytes(), selected.content_type)}
            logger.info("Submitting blueprint path={} endpoint={}", str(selected.path), self.endpoint)
            response = self._http.post(self.endpoint, files=files, headers=headers)
            if not response.is_success:
                raise RuntimeError(_error_message(response))
            data = response.json()
            result = ColorizeResult.model_validate(data)
        except (httpx.HTTPError, OSError, ValueError, RuntimeError) as exc:
            self.error = str(exc) or "Something went wrong"
            self.state = SessionState.IDLE
            logger.error("Colorization failed path={} error={}", str(selected.path), self.error)
            return None

        self.result = result
        self.selected = None
        self.state = SessionState.RESULT
        logger.info("Colorization complete colored_url={}", result.colored_url)
        return result

    def download(self, url: str, destination: str | Path) -> Path:
        target = Path(destination)
        if target.is_dir():
            segments = httpx.URL(url).path.rstrip("/").split("/")
            target = target / "_".join(s for s in segments[-2:] if s)
        response = self._http.get(url)
        response.raise_for_status()
        target.write_bytes(response.content)
        logger.info("Image downloaded url={} destination={} size_bytes={}", url, str(target), len(response.content))
        return target

    def close(self) -> None:
        self._http.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Colorize a black and white architectural blueprint.")
    parser.add_argument("file", type=Path, help="PNG or JPEG blueprint to upload")
    parser.add_argument("--endpoint", default=settings.colorize_endpoint, help="colorize endpoint URL")
    parser.add_argument("--api-key", default=settings.client_api_key, help="value sent in the apikey header")
    parser.add_argument("--download-dir", type=Path, default=None, help="save original and colored images here")
    args = parser.parse_args(argv)

    session = UploadSession(args.endpoint, args.api_key)
    try:
        session.select_file(args.file)
        result = session.submit()
        if result is None:
            print(f"error: {session.error}", file=sys.stderr)
            return 1
        print(f"original: {result.original_url}")
        print(f"colored:  {result.colored_url}")
        if args.download_dir is not None:
            args.download_dir.mkdir(parents=True, exist_ok=True)
            for url in (result.original_url, result.colored_url):
                print(f"saved:    {session.download(url, args.download_dir)}")
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
