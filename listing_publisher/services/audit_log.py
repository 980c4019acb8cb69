# listing_publisher/services/audit_log.py
"""
Raw response capture.

Every submission response is written to disk before it is interpreted, one
file per response, never overwritten. Files are served back by name through
`/{platform}-response/{filename}`.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from listing_publisher.core.exceptions import AuditWriteError
from listing_publisher.schemas.listing import AuditRecord

logger = logging.getLogger(__name__)

FILENAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+\.html$")
HEADER_PATTERN = re.compile(r"^<!-- Status Code: (\d+) -->\n<!-- Subject ID: (.*?) -->\n", re.DOTALL)
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def is_allowed_filename(filename: str) -> bool:
    return bool(filename) and ".." not in filename and bool(FILENAME_PATTERN.match(filename))


class ResponseCapture:
    """Write-once store of raw platform responses for one platform."""

    def __init__(self, root: str, platform_id: str, clock=datetime.now):
        self.root = Path(root)
        self.platform_id = platform_id
        self._clock = clock

    @property
    def folder(self) -> str:
        return f"{self.platform_id}_responses"

    @property
    def directory(self) -> Path:
        return self.root / self.folder

    def capture(self, subject_id: str, status_code: int, body: str) -> str:
        """
        Persist a raw response; return its retrieval path relative to the audit root.

        Raises:
            AuditWriteError: when the file cannot be written.
        """
        timestamp = self._clock()
        safe_subject = re.sub(r"[^A-Za-z0-9_-]", "-", str(subject_id)) or "unknown"
        stem = f"{self.platform_id}_response_{timestamp.strftime(TIMESTAMP_FORMAT)}_{safe_subject}"
        content = f"<!-- Status Code: {status_code} -->\n<!-- Subject ID: {subject_id} -->\n{body or ''}"

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self._write_new(stem, content)
        except OSError as e:
            logger.error(f"Could not write {self.platform_id} response for subject {subject_id}: {e}")
            raise AuditWriteError(f"Could not write response capture: {e}") from e

        retrieval_path = f"{self.folder}/{path.name}"
        logger.info(f"Saved {self.platform_id} response (HTTP {status_code}) to {retrieval_path}")
        return retrieval_path

    def _write_new(self, stem: str, content: str) -> Path:
        # Two captures within the same second get a numeric suffix
        attempt = 0
        while True:
            name = f"{stem}.html" if attempt == 0 else f"{stem}_{attempt}.html"
            path = self.directory / name
            try:
                with open(path, "x", encoding="utf-8", newline="") as f:
                    f.write(content)
                return path
            except FileExistsError:
                attempt += 1

    def resolve(self, filename: str) -> Optional[Path]:
        """Path of a captured file by bare name, or None when the name is not allowed or missing."""
        if not is_allowed_filename(filename):
            return None
        path = self.directory / filename
        return path if path.is_file() else None

    def read(self, retrieval_path: str) -> AuditRecord:
        filename = retrieval_path.rsplit("/", 1)[-1]
        path = self.resolve(filename)
        if path is None:
            raise FileNotFoundError(retrieval_path)

        with open(path, encoding="utf-8", newline="") as f:
            content = f.read()
        match = HEADER_PATTERN.match(content)
        status_code = int(match.group(1)) if match else 0
        subject_id = match.group(2) if match else ""
        raw_body = content[match.end():] if match else content

        return AuditRecord(
            timestamp=datetime.fromtimestamp(path.stat().st_mtime),
            subject_id=subject_id,
            status_code=status_code,
            raw_body=raw_body,
            retrieval_path=f"{self.folder}/{filename}",
        )

    def response_url(self, retrieval_path: Optional[str]) -> Optional[str]:
        if not retrieval_path:
            return None
        return f"/{self.platform_id}-response/{retrieval_path.rsplit('/', 1)[-1]}"
