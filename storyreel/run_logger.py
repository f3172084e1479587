"""Per-run log file and manifest for generation and render sessions."""
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict


class RunLogger:
    def __init__(self, run_dir: str) -> None:
        self.run_dir = run_dir
        os.makedirs(self.run_dir, exist_ok=True)
        self.log_path = os.path.join(self.run_dir, "run.log")
        self.manifest_path = os.path.join(self.run_dir, "run_manifest.json")
        self.manifest: Dict[str, Any] = {}
        if os.path.exists(self.manifest_path):
            try:
                with open(self.manifest_path, "r", encoding="utf-8") as f:
                    self.manifest = json.load(f)
            except (OSError, json.JSONDecodeError):
                self.manifest = {}
        if not self.manifest:
            self.manifest = {
                "run_id": os.path.basename(os.path.normpath(run_dir)),
                "started_at": _now(),
                "steps": {},
            }
        else:
            self.manifest.setdefault("run_id", os.path.basename(os.path.normpath(run_dir)))
            self.manifest.setdefault("steps", {})

    def log(self, message: str) -> None:
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(f"[{_now()}] {message}\n")

    def save_step(self, step: str, payload: Dict[str, Any]) -> None:
        self.manifest["steps"].setdefault(step, {}).update(payload)
        self._flush()

    def _flush(self) -> None:
        self.manifest["updated_at"] = _now()
        with open(self.manifest_path, "w", encoding="utf-8") as f:
            json.dump(self.manifest, f, ensure_ascii=True, indent=2)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def make_run_id(prefix: str = "run") -> str:
    return datetime.now(timezone.utc).strftime(f"{prefix}-%Y%m%d-%H%M%S")
