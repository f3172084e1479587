"""Content-addressed store for rendered videos and narration WAVs."""
import hashlib
import json
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
DEFAULT_ARTIFACT_ROOT = os.path.join(BASE_DIR, "data", "artifacts")

_EXTENSIONS = {
    "audio/wav": "wav",
    "video/webm": "webm",
    "video/mp4": "mp4",
    "application/zip": "zip",
}


@dataclass
class ArtifactMetadata:
    artifact_id: str
    size_bytes: int
    content_type: str
    extension: str
    tags: List[str] = field(default_factory=list)
    created_at: str = ""


def extension_for(content_type: str) -> str:
    base = content_type.split(";", 1)[0].strip().lower()
    return _EXTENSIONS.get(base, "bin")


class ArtifactStore:
    def __init__(self, root: Optional[str] = None) -> None:
        self.root = root or os.getenv("ARTIFACT_ROOT", DEFAULT_ARTIFACT_ROOT)
        os.makedirs(self.root, exist_ok=True)

    def _dir(self, artifact_id: str) -> str:
        return os.path.join(self.root, artifact_id[:2], artifact_id[2:4])

    def _meta_path(self, artifact_id: str) -> str:
        return os.path.join(self._dir(artifact_id), f"{artifact_id}.json")

    def put(self, data: bytes, content_type: str, tags: Optional[Iterable[str]] = None) -> str:
        artifact_id = hashlib.sha256(data).hexdigest()
        meta = ArtifactMetadata(
            artifact_id=artifact_id,
            size_bytes=len(data),
            content_type=content_type,
            extension=extension_for(content_type),
            tags=list(tags or []),
            created_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        )
        os.makedirs(self._dir(artifact_id), exist_ok=True)
        path = os.path.join(self._dir(artifact_id), f"{artifact_id}.{meta.extension}")
        if not os.path.exists(path):
            with open(path, "wb") as f:
                f.write(data)
        if not os.path.exists(self._meta_path(artifact_id)):
            with open(self._meta_path(artifact_id), "w", encoding="utf-8") as f:
                json.dump(asdict(meta), f, ensure_ascii=True)
        return artifact_id

    def get_metadata(self, artifact_id: str) -> ArtifactMetadata:
        meta_path = self._meta_path(artifact_id)
        if not os.path.exists(meta_path):
            raise FileNotFoundError(f"artifact not found: {artifact_id}")
        with open(meta_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return ArtifactMetadata(
            artifact_id=raw["artifact_id"],
            size_bytes=int(raw["size_bytes"]),
            content_type=raw.get("content_type", ""),
            extension=raw.get("extension", "bin"),
            tags=list(raw.get("tags", [])),
            created_at=raw.get("created_at", ""),
        )

    def get_path(self, artifact_id: str) -> str:
        meta = self.get_metadata(artifact_id)
        path = os.path.join(self._dir(artifact_id), f"{artifact_id}.{meta.extension}")
        if not os.path.exists(path):
            raise FileNotFoundError(f"artifact data missing: {artifact_id}")
        return path

    def list(self, tags: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        wanted = set(tags or [])
        results: List[Dict[str, Any]] = []
        for root, _dirs, files in os.walk(self.root):
            for name in sorted(files):
                if not name.endswith(".json"):
                    continue
                with open(os.path.join(root, name), "r", encoding="utf-8") as f:
                    meta = json.load(f)
                if wanted and not wanted.intersection(meta.get("tags", [])):
                    continue
                results.append(meta)
        return results
