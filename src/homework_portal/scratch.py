"""Scratch pad image storage.

Images arrive as ``data:image/<ext>;base64,<data>`` URLs and are written to
``<assignment>_<problem>[_<index>].<ext>``. Only the returned
``/scratch-images/...`` paths are kept with the answer.

Decoding and writing are separate steps so a caller can keep the reference
inside a transaction and write the files once it has committed.
"""
import base64
import binascii
import json
import re
from pathlib import Path
from typing import Optional

from loguru import logger

from homework_portal.config import Settings, get_settings

DATA_URL = re.compile(r"^data:image/(\w+);base64,(.+)$", re.DOTALL)
URL_PREFIX = "/scratch-images"
_UNSAFE = re.compile(r"[^\w-]")

# (filename, bytes) pairs waiting to be written
PendingFiles = list[tuple[str, bytes]]


class ScratchStore:
    def __init__(self, directory: str):
        self.directory = Path(directory)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ScratchStore":
        settings = settings or get_settings()
        return cls(settings.scratch_images_dir)

    def decode_image(self, assignment_id: str, problem_id: str, data_url: str,
                     index: int = 0) -> Optional[tuple[str, bytes]]:
        """Return (filename, bytes) for one image, or None if the payload is unusable."""
        match = DATA_URL.match(data_url or "")
        if not match:
            logger.warning(f"Ignoring scratch image for problem {problem_id}: not an image data URL")
            return None
        ext, payload = match.groups()
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            logger.warning(f"Ignoring scratch image for problem {problem_id}: {exc}")
            return None

        stem = f"{_UNSAFE.sub('', assignment_id)}_{_UNSAFE.sub('', problem_id)}"
        filename = f"{stem}_{index}.{ext}" if index > 0 else f"{stem}.{ext}"
        return filename, data

    def write_files(self, files: PendingFiles) -> None:
        if not files:
            return
        self.directory.mkdir(parents=True, exist_ok=True)
        for filename, data in files:
            (self.directory / filename).write_bytes(data)

    def prepare_submission(
        self,
        assignment_id: str,
        problem_id: str,
        images: Optional[list[str]] = None,
        image: Optional[str] = None,
    ) -> tuple[Optional[str], PendingFiles]:
        """Decode the scratch work sent with an answer without touching the disk.

        Returns the value to keep on the record and the files to write.
        Several images are kept as a JSON list of paths; the older single
        image form is kept as a plain path.
        """
        if images:
            files = []
            for index, data_url in enumerate(images, 1):
                decoded = self.decode_image(assignment_id, problem_id, data_url, index)
                if decoded:
                    files.append(decoded)
            if not files:
                return None, []
            return json.dumps([f"{URL_PREFIX}/{name}" for name, _ in files]), files
        if image:
            decoded = self.decode_image(assignment_id, problem_id, image, 0)
            if decoded:
                return f"{URL_PREFIX}/{decoded[0]}", [decoded]
        return None, []
